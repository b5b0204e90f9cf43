"""Client-side consumer for the run stream.

Opens ``POST /runs/stream``, decodes frames as bytes arrive, and grows the
in-flight assistant message in a transcript. One send is in flight per
consumer; a new send supersedes the previous one.
"""

import asyncio
import itertools
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx

from agent_relay.errors import StreamError, StreamTimedOut
from agent_relay.models.schemas import StreamFrame
from agent_relay.streaming.decoder import SSEDecoder

logger = logging.getLogger(__name__)

DEFAULT_STREAM_TIMEOUT = 90.0

_message_ids = itertools.count()


@dataclass
class ChatMessage:
    role: str
    content: str
    id: str = field(default_factory=lambda: f"msg-{next(_message_ids)}")
    timestamp: float = field(default_factory=time.time)


class ChatTranscript:
    """Ordered messages of one conversation as seen by the client."""

    def __init__(self) -> None:
        self.messages: list[ChatMessage] = []

    def add_user(self, content: str) -> ChatMessage:
        message = ChatMessage(role="user", content=content)
        self.messages.append(message)
        return message

    def add_assistant_placeholder(self) -> ChatMessage:
        message = ChatMessage(role="assistant", content="")
        self.messages.append(message)
        return message

    def append_to_assistant(self, token: str) -> bool:
        """Append a token to the last message if it is an assistant turn."""
        if not self.messages or self.messages[-1].role != "assistant":
            return False
        self.messages[-1].content += token
        return True

    def drop_empty_assistant(self) -> bool:
        """Remove a trailing assistant placeholder that never got content."""
        if self.messages and self.messages[-1].role == "assistant":
            if not self.messages[-1].content:
                self.messages.pop()
                return True
        return False

    def clear(self) -> None:
        self.messages.clear()


class StreamConsumer:
    """Sends chat messages and reassembles the streamed reply.

    Args:
        base_url: Root URL of the relay API.
        transcript: Transcript to update; a new one is created if omitted.
        timeout: Hard ceiling for one send, in seconds.
        client: Shared httpx client. Created per send when omitted.
    """

    def __init__(
        self,
        base_url: str,
        transcript: ChatTranscript | None = None,
        timeout: float = DEFAULT_STREAM_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.transcript = transcript or ChatTranscript()
        self.timeout = timeout
        self._client = client
        self._task: asyncio.Task | None = None
        self._abort: asyncio.Event | None = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def abort(self) -> None:
        """Cancel the in-flight send, if any."""
        if self._abort is not None:
            self._abort.set()
        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def send(
        self,
        content: str,
        thread_id: str,
        on_token: Callable[[str], None] | None = None,
    ) -> str:
        """Send a message and stream the reply into the transcript.

        Args:
            content: The user's message.
            thread_id: Target thread; blank means no thread is ready yet.
            on_token: Called with each token after it is applied.

        Returns:
            The assistant reply as assembled from token frames.

        Raises:
            StreamError: The server sent an error frame or refused the request.
            StreamTimedOut: The send was aborted, superseded, or timed out.
        """
        content = content.strip()
        if not content or not thread_id:
            return ""

        await self._supersede()

        abort = asyncio.Event()
        self._abort = abort
        task = asyncio.create_task(self._run(content, thread_id, abort, on_token))
        self._task = task
        try:
            return await task
        except asyncio.CancelledError:
            if task.cancelled() and abort.is_set():
                # Aborted before the task got to run
                raise StreamTimedOut("Request timed out") from None
            task.cancel()
            raise
        finally:
            if self._task is task:
                self._task = None
                self._abort = None

    async def _supersede(self) -> None:
        previous = self._task
        if previous is None or previous.done():
            return
        logger.info("Superseding in-flight stream request")
        self.abort()
        try:
            await previous
        except (StreamTimedOut, StreamError, asyncio.CancelledError):
            pass

    async def _run(
        self,
        content: str,
        thread_id: str,
        abort: asyncio.Event,
        on_token: Callable[[str], None] | None,
    ) -> str:
        self.transcript.add_user(content)
        self.transcript.add_assistant_placeholder()
        received: list[str] = []
        try:
            async with asyncio.timeout(self.timeout):
                await self._stream(content, thread_id, abort, received, on_token)
        except TimeoutError as e:
            self.transcript.drop_empty_assistant()
            raise StreamTimedOut("Request timed out") from e
        except asyncio.CancelledError:
            self.transcript.drop_empty_assistant()
            if abort.is_set():
                current = asyncio.current_task()
                if current is not None:
                    current.uncancel()
                raise StreamTimedOut("Request timed out") from None
            raise
        except BaseException:
            self.transcript.drop_empty_assistant()
            raise

        self.transcript.drop_empty_assistant()
        return "".join(received)

    async def _stream(
        self,
        content: str,
        thread_id: str,
        abort: asyncio.Event,
        received: list[str],
        on_token: Callable[[str], None] | None,
    ) -> None:
        client = self._client or httpx.AsyncClient(timeout=None)
        try:
            async with client.stream(
                "POST",
                f"{self.base_url}/runs/stream",
                json={"threadId": thread_id, "content": content},
                headers={"Accept": "text/event-stream"},
            ) as response:
                if response.status_code >= 400:
                    await response.aread()
                    raise StreamError(_error_message(response))

                decoder = SSEDecoder()
                async for chunk in response.aiter_bytes():
                    if self._apply(decoder.feed(chunk), abort, received, on_token):
                        return
                self._apply(decoder.flush(), abort, received, on_token)
        except httpx.RequestError as e:
            raise StreamError(f"Connection failed: {e}") from e
        finally:
            if self._client is None:
                await client.aclose()

    def _apply(
        self,
        frames: list[StreamFrame],
        abort: asyncio.Event,
        received: list[str],
        on_token: Callable[[str], None] | None,
    ) -> bool:
        """Apply decoded frames in order. Returns True once the stream is done."""
        for frame in frames:
            if abort.is_set():
                raise StreamTimedOut("Request timed out")
            if frame.error is not None:
                raise StreamError(frame.error)
            if frame.done:
                return True
            if frame.token:
                self.transcript.append_to_assistant(frame.token)
                received.append(frame.token)
                if on_token is not None:
                    on_token(frame.token)
        if abort.is_set():
            raise StreamTimedOut("Request timed out")
        return False


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(data, dict):
        detail = data.get("error") or data.get("detail")
        if isinstance(detail, str):
            return detail
    return f"HTTP {response.status_code}"
