"""Retrying HTTP gateway to the upstream thread/run/message API.

Transport failures are retried with exponential backoff. HTTP error
responses are a definitive answer from the backend and propagate at once.
"""

import logging
from typing import Any

import httpx
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from agent_relay.backend.auth import TokenProvider
from agent_relay.config import RelaySettings
from agent_relay.errors import BackendError, NetworkError
from agent_relay.models.threads import Run

logger = logging.getLogger(__name__)


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        f"[Gateway] Attempt {retry_state.attempt_number} failed: {error}; "
        f"retrying in {delay:.2f}s"
    )


class BackendGateway:
    """Thin client for the upstream agent API.

    Args:
        settings: Relay settings (endpoint, API version, retry policy).
        token_provider: Supplies the bearer token for every call.
        client: Shared httpx client. One is created and owned if omitted.
    """

    def __init__(
        self,
        settings: RelaySettings,
        token_provider: TokenProvider,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._tokens = token_provider
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.request_timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _url(self, path: str) -> str:
        return f"{self._settings.project_endpoint}{path}"

    async def call(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        query_params: dict[str, str] | None = None,
    ) -> Any:
        """Call the upstream API and return the parsed JSON body.

        Args:
            method: HTTP method.
            path: Path below the project endpoint, e.g. ``/threads``.
            body: JSON request body.
            query_params: Extra query parameters; ``api-version`` is always added.

        Returns:
            Parsed JSON, or None for 204/empty responses.

        Raises:
            BackendError: Upstream answered with a non-2xx status.
            NetworkError: Transport failed on every attempt.
        """
        params = dict(query_params or {})
        params["api-version"] = self._settings.api_version
        token = await self._tokens.get()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        logger.info(f"[Gateway] {method} {path}")
        try:
            response = await self._send_with_retry(method, path, headers, params, body)
        except httpx.TransportError as e:
            logger.error(f"[Gateway] {method} {path} failed: {e}")
            raise NetworkError(f"Failed to reach backend: {e}") from e

        if response.is_error:
            message = response.text[: self._settings.error_body_limit]
            logger.error(f"[Gateway] {method} {path}: {response.status_code} {message}")
            raise BackendError(
                f"Backend error ({response.status_code}): {message}",
                status_code=response.status_code,
            )

        if response.status_code == httpx.codes.NO_CONTENT or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise BackendError(
                f"Backend returned invalid JSON for {method} {path}",
                status_code=response.status_code,
            ) from e

    async def _send_with_retry(
        self,
        method: str,
        path: str,
        headers: dict[str, str],
        params: dict[str, str],
        body: dict[str, Any] | None,
    ) -> httpx.Response:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.gateway_max_attempts),
            wait=wait_exponential(multiplier=self._settings.gateway_base_delay),
            retry=retry_if_exception_type(httpx.TransportError),
            before_sleep=_log_retry,
            reraise=True,
        )
        return await retrying(
            self._client.request,
            method,
            self._url(path),
            headers=headers,
            params=params,
            json=body,
        )

    async def create_thread(self) -> str:
        data = await self.call("POST", "/threads", {})
        return _require_id(data, "thread")

    async def add_message(self, thread_id: str, content: str) -> str:
        data = await self.call(
            "POST",
            f"/threads/{thread_id}/messages",
            {"role": "user", "content": content},
        )
        return _require_id(data, "message")

    async def create_run(self, thread_id: str) -> Run:
        data = await self.call(
            "POST",
            f"/threads/{thread_id}/runs",
            {"assistant_id": self._settings.agent_id},
        )
        _require_id(data, "run")
        return _parse_run(data)

    async def get_run(self, thread_id: str, run_id: str) -> Run:
        data = await self.call("GET", f"/threads/{thread_id}/runs/{run_id}")
        if not isinstance(data, dict):
            raise BackendError(f"Malformed run status for {run_id}")
        return _parse_run({"id": run_id, **data})

    async def list_messages(self, thread_id: str, run_id: str | None = None) -> Any:
        """Return the ``data`` member of the message listing, unvalidated."""
        query_params = {"run_id": run_id} if run_id else None
        data = await self.call(
            "GET", f"/threads/{thread_id}/messages", query_params=query_params
        )
        if isinstance(data, dict):
            return data.get("data")
        return data

    async def delete_thread(self, thread_id: str) -> None:
        await self.call("DELETE", f"/threads/{thread_id}")


def _require_id(data: Any, what: str) -> str:
    if isinstance(data, dict):
        value = data.get("id")
        if isinstance(value, str) and value:
            return value
    raise BackendError(f"No {what} id returned by backend")


def _parse_run(data: dict[str, Any]) -> Run:
    try:
        return Run.model_validate(data)
    except ValidationError as e:
        raise BackendError(f"Malformed run returned by backend: {e}") from e
