"""Bearer token providers for the upstream API.

The gateway depends only on the ``TokenProvider`` protocol. The client
credential provider caches its token and refreshes it shortly before expiry.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import httpx

from agent_relay.config import RelaySettings
from agent_relay.errors import AuthenticationError

logger = logging.getLogger(__name__)

TOKEN_ENDPOINT = "https://login.microsoftonline.com/{tenant_id}/oauth2/v2.0/token"


class TokenProvider(Protocol):
    async def get(self) -> str: ...

    def invalidate(self) -> None: ...


@dataclass(frozen=True)
class CachedCredential:
    token: str
    expires_at: float

    def is_fresh(self, now: float, buffer: float) -> bool:
        return self.expires_at - buffer > now


class StaticTokenProvider:
    """Serves a fixed token. Used with RELAY_STATIC_TOKEN and in tests."""

    def __init__(self, token: str) -> None:
        self._token = token
        self.invalidations = 0

    async def get(self) -> str:
        return self._token

    def invalidate(self) -> None:
        self.invalidations += 1


class ClientCredentialsTokenProvider:
    """OAuth2 client-credential token provider with an in-memory cache.

    Readers get the cached token without locking while it is fresh. Refresh
    happens under a lock; callers that queued behind a refresh reuse its
    result instead of fetching again.
    """

    def __init__(
        self,
        settings: RelaySettings,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings
        self._client = client
        self._clock = clock
        self._cached: CachedCredential | None = None
        self._lock = asyncio.Lock()

    async def get(self) -> str:
        if self._fresh():
            return self._cached.token

        async with self._lock:
            if self._fresh():
                return self._cached.token
            self._cached = await self._fetch()
            return self._cached.token

    def _fresh(self) -> bool:
        cached = self._cached
        return cached is not None and cached.is_fresh(
            self._clock(), self._settings.token_refresh_buffer
        )

    def invalidate(self) -> None:
        self._cached = None

    async def _fetch(self) -> CachedCredential:
        settings = self._settings
        url = TOKEN_ENDPOINT.format(tenant_id=settings.tenant_id)
        form = {
            "grant_type": "client_credentials",
            "client_id": settings.client_id,
            "client_secret": settings.client_secret,
            "scope": settings.token_scope,
        }

        client = self._client or httpx.AsyncClient(timeout=settings.request_timeout)
        try:
            response = await client.post(url, data=form)
        except httpx.TransportError as e:
            raise AuthenticationError(f"Token acquisition failed: {e}") from e
        finally:
            if self._client is None:
                await client.aclose()

        if response.is_error:
            raise AuthenticationError(
                f"Token acquisition failed ({response.status_code}): "
                f"{response.text[: settings.error_body_limit]}"
            )

        try:
            data = response.json()
            token = data["access_token"]
            expires_in = float(data["expires_in"])
        except (ValueError, KeyError, TypeError) as e:
            raise AuthenticationError(f"Malformed token response: {e}") from e

        logger.info(f"Acquired access token (expires in {expires_in:.0f}s)")
        return CachedCredential(token=token, expires_at=self._clock() + expires_in)


def build_token_provider(
    settings: RelaySettings, client: httpx.AsyncClient | None = None
) -> TokenProvider:
    if settings.static_token:
        return StaticTokenProvider(settings.static_token)
    return ClientCredentialsTokenProvider(settings, client=client)
