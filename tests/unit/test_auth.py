"""Unit tests for bearer token providers."""

import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from agent_relay.backend import (
    ClientCredentialsTokenProvider,
    StaticTokenProvider,
    build_token_provider,
)
from agent_relay.errors import AuthenticationError
from tests.conftest import make_settings


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TokenEndpoint:
    """MockTransport handler issuing numbered tokens."""

    def __init__(self, expires_in: int = 3600, status_code: int = 200) -> None:
        self.expires_in = expires_in
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        await asyncio.sleep(0)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "invalid_client"})
        return httpx.Response(
            200,
            json={
                "access_token": f"token-{len(self.requests)}",
                "expires_in": self.expires_in,
                "token_type": "Bearer",
            },
        )


def oauth_settings():
    return make_settings(
        static_token=None, tenant_id="tenant-1", client_id="client-1", client_secret="s3cret"
    )


def provider_for(endpoint: TokenEndpoint, clock: FakeClock) -> ClientCredentialsTokenProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(endpoint))
    return ClientCredentialsTokenProvider(oauth_settings(), client=client, clock=clock)


class TestClientCredentialsTokenProvider:
    """Tests for token caching and refresh."""

    async def test_requests_client_credentials_grant(self) -> None:
        endpoint = TokenEndpoint()
        provider = provider_for(endpoint, FakeClock())

        assert await provider.get() == "token-1"

        request = endpoint.requests[0]
        form = parse_qs(request.content.decode())
        assert request.url.path == "/tenant-1/oauth2/v2.0/token"
        assert form["grant_type"] == ["client_credentials"]
        assert form["client_id"] == ["client-1"]
        assert form["scope"] == ["https://ai.azure.com/.default"]

    async def test_token_is_cached(self) -> None:
        endpoint = TokenEndpoint(expires_in=3600)
        clock = FakeClock()
        provider = provider_for(endpoint, clock)

        await provider.get()
        clock.now += 3000
        token = await provider.get()

        assert token == "token-1"
        assert len(endpoint.requests) == 1

    async def test_refreshes_within_buffer_of_expiry(self) -> None:
        endpoint = TokenEndpoint(expires_in=3600)
        clock = FakeClock()
        provider = provider_for(endpoint, clock)

        await provider.get()
        clock.now += 3600 - 299
        token = await provider.get()

        assert token == "token-2"
        assert len(endpoint.requests) == 2

    async def test_concurrent_callers_share_one_fetch(self) -> None:
        endpoint = TokenEndpoint()
        provider = provider_for(endpoint, FakeClock())

        tokens = await asyncio.gather(*(provider.get() for _ in range(10)))

        assert set(tokens) == {"token-1"}
        assert len(endpoint.requests) == 1

    async def test_invalidate_forces_refetch(self) -> None:
        endpoint = TokenEndpoint()
        provider = provider_for(endpoint, FakeClock())

        await provider.get()
        provider.invalidate()

        assert await provider.get() == "token-2"

    async def test_rejected_credentials(self) -> None:
        provider = provider_for(TokenEndpoint(status_code=401), FakeClock())

        with pytest.raises(AuthenticationError, match="401"):
            await provider.get()

    async def test_malformed_token_response(self) -> None:
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"foo": 1}))
        )
        provider = ClientCredentialsTokenProvider(oauth_settings(), client=client)

        with pytest.raises(AuthenticationError, match="Malformed token response"):
            await provider.get()


class TestBuildTokenProvider:
    """Tests for provider selection."""

    def test_static_token_selected(self) -> None:
        provider = build_token_provider(make_settings(static_token="fixed"))

        assert isinstance(provider, StaticTokenProvider)

    def test_client_credentials_selected(self) -> None:
        provider = build_token_provider(oauth_settings())

        assert isinstance(provider, ClientCredentialsTokenProvider)
