"""Per-conversation thread ownership with idle teardown.

A session holds at most one thread id. Between deleting an old thread and
creating a new one there is no id; callers treat that as "not ready".
"""

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from typing import Protocol

import httpx

from agent_relay.errors import BackendError, NetworkError, RelayError

logger = logging.getLogger(__name__)


class ThreadBackend(Protocol):
    async def create_thread(self) -> str: ...

    async def delete_thread(self, thread_id: str) -> None: ...

    async def aclose(self) -> None: ...


class HttpThreadClient:
    """ThreadBackend over the relay's own ``/threads`` endpoints."""

    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=30.0)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def create_thread(self) -> str:
        try:
            response = await self._client.post(f"{self.base_url}/threads")
        except httpx.RequestError as e:
            raise NetworkError(f"Failed to reach relay: {e}") from e
        data = _json_body(response)
        if response.is_error or not data.get("success") or not data.get("threadId"):
            raise BackendError(
                data.get("error") or f"Thread creation failed ({response.status_code})",
                status_code=response.status_code,
            )
        return data["threadId"]

    async def delete_thread(self, thread_id: str) -> None:
        try:
            response = await self._client.request(
                "DELETE", f"{self.base_url}/threads", json={"threadId": thread_id}
            )
        except httpx.RequestError as e:
            raise NetworkError(f"Failed to reach relay: {e}") from e
        if response.is_error:
            data = _json_body(response)
            raise BackendError(
                data.get("error") or f"Thread deletion failed ({response.status_code})",
                status_code=response.status_code,
            )


def _json_body(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class ThreadSession:
    """Owns the current thread of one conversation.

    Args:
        backend: Creates and deletes threads.
        idle_timeout: Seconds without activity before the thread is deleted.
        check_interval: Seconds between idle checks once started.
        clock: Monotonic clock, injectable for tests.
        on_idle_teardown: Called after the idle watcher deleted the thread.
    """

    def __init__(
        self,
        backend: ThreadBackend,
        idle_timeout: float = 300.0,
        check_interval: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
        on_idle_teardown: Callable[[], None] | None = None,
    ) -> None:
        self._backend = backend
        self._on_idle_teardown = on_idle_teardown
        self.idle_timeout = idle_timeout
        self.check_interval = check_interval
        self._clock = clock
        self.thread_id: str | None = None
        self.last_activity = clock()
        self._watcher: asyncio.Task | None = None

    @property
    def ready(self) -> bool:
        return self.thread_id is not None

    def touch(self) -> None:
        self.last_activity = self._clock()

    def is_idle(self) -> bool:
        return self._clock() - self.last_activity > self.idle_timeout

    async def ensure_thread(self) -> str | None:
        """Create a thread if none is held. Returns None if creation failed."""
        if self.thread_id is None:
            try:
                self.thread_id = await self._backend.create_thread()
            except RelayError as e:
                logger.error(f"Thread creation failed: {e}")
                return None
            self.touch()
            logger.info(f"Session thread ready: {self.thread_id}")
        return self.thread_id

    async def delete_current(self) -> None:
        """Delete the held thread; failures are logged, not raised."""
        thread_id, self.thread_id = self.thread_id, None
        if thread_id is None:
            return
        try:
            await self._backend.delete_thread(thread_id)
            logger.info(f"Deleted thread {thread_id}")
        except RelayError as e:
            logger.warning(f"Failed to delete thread {thread_id}: {e}")

    async def new_chat(self) -> str | None:
        await self.delete_current()
        return await self.ensure_thread()

    async def check_idle(self) -> bool:
        """Delete the thread if idle too long. Returns True if it was deleted."""
        if self.thread_id is None or not self.is_idle():
            return False
        logger.info(f"Thread {self.thread_id} idle for over {self.idle_timeout:.0f}s")
        await self.delete_current()
        if self._on_idle_teardown is not None:
            self._on_idle_teardown()
        return True

    def start(self) -> None:
        """Begin periodic idle checks on the running event loop."""
        if self._watcher is None or self._watcher.done():
            self._watcher = asyncio.create_task(self._watch())

    async def stop(self) -> None:
        watcher, self._watcher = self._watcher, None
        if watcher is not None:
            watcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await watcher

    async def aclose(self) -> None:
        """Stop the idle watcher and release the backend's connections."""
        await self.stop()
        await self._backend.aclose()

    async def _watch(self) -> None:
        while True:
            await asyncio.sleep(self.check_interval)
            await self.check_idle()
