"""Per-browser chat state shared by the NiceGUI page."""

from collections.abc import Callable

import httpx

from agent_relay.config import RelaySettings
from agent_relay.streaming.consumer import ChatMessage, StreamConsumer
from agent_relay.threads.session import HttpThreadClient, ThreadSession


class ChatSession:
    """Chat state for one browser session: thread plus transcript.

    Args:
        settings: Relay settings supplying the idle teardown policy.
        api_base_url: Base URL of the relay API.
        client: Optional shared HTTP client, left open by ``close``. When
            omitted, the thread backend owns one and ``close`` releases it.
        on_idle_teardown: Called after the idle watcher deleted the thread.
    """

    def __init__(
        self,
        settings: RelaySettings,
        api_base_url: str,
        client: httpx.AsyncClient | None = None,
        on_idle_teardown: Callable[[], None] | None = None,
    ) -> None:
        self.threads = ThreadSession(
            HttpThreadClient(api_base_url, client=client),
            idle_timeout=settings.thread_idle_timeout,
            check_interval=settings.thread_idle_check_interval,
            on_idle_teardown=on_idle_teardown,
        )
        self.consumer = StreamConsumer(api_base_url, client=client)

    @property
    def messages(self) -> list[ChatMessage]:
        return self.consumer.transcript.messages

    @property
    def is_streaming(self) -> bool:
        return self.consumer.in_flight

    @property
    def can_send(self) -> bool:
        return self.threads.ready and not self.is_streaming

    async def close(self) -> None:
        """Abort any in-flight stream, stop idle checks and release connections."""
        self.consumer.abort()
        await self.threads.aclose()
