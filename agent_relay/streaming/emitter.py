"""Re-streaming a resolved response as paced SSE frames.

The emitter owns the producer side of the stream: it awaits the workflow
result, splits it into tokens, and emits one frame per token followed by a
single terminal frame. A failure while producing the response becomes one
error frame. A rejected or stalled write ends emission without a completion
frame.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable

from agent_relay.errors import RelayError
from agent_relay.models.schemas import StreamFrame
from agent_relay.streaming.tokens import Granularity, tokenize

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_MESSAGE = "Unexpected server error"

Producer = Callable[[], Awaitable[str]]
FrameSink = Callable[[StreamFrame], Awaitable[None]]


class ResponseEmitter:
    """Emits a resolved response as an ordered sequence of StreamFrames.

    Args:
        granularity: Word-level (default) or character-level tokens.
        frame_delay: Pause after each token frame, in seconds. Zero in tests.
        write_timeout: Upper bound for a single sink write in ``emit``.
        sleep: Awaitable sleep, injectable for tests.
        label: Prefix for log lines, usually the request id.
    """

    def __init__(
        self,
        granularity: Granularity = Granularity.WORD,
        frame_delay: float = 0.012,
        write_timeout: float = 10.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        label: str = "stream",
    ) -> None:
        self.granularity = granularity
        self.frame_delay = frame_delay
        self.write_timeout = write_timeout
        self._sleep = sleep
        self._label = label

    async def frames(self, produce: Producer) -> AsyncGenerator[StreamFrame]:
        """Yield token frames for the produced text, then one terminal frame.

        Args:
            produce: Coroutine function returning the final response text.

        Yields:
            Token frames, then exactly one done or error frame.
        """
        try:
            text = await produce()
        except RelayError as e:
            logger.warning(f"[{self._label}] {e.kind.value}: {e.message}")
            yield StreamFrame.failure(e.message)
            return
        except Exception:
            logger.exception(f"[{self._label}] Unexpected error producing response")
            yield StreamFrame.failure(UNEXPECTED_ERROR_MESSAGE)
            return

        tokens = tokenize(text, self.granularity)
        for token in tokens:
            yield StreamFrame.of_token(token)
            if self.frame_delay:
                await self._sleep(self.frame_delay)

        logger.info(f"[{self._label}] Emitted {len(tokens)} tokens")
        yield StreamFrame.completion()

    async def stream(self, produce: Producer) -> AsyncGenerator[str]:
        """Yield SSE-encoded frames for a StreamingResponse body."""
        async for frame in self.frames(produce):
            yield frame.to_sse()

    async def emit(self, produce: Producer, sink: FrameSink) -> bool:
        """Push frames into ``sink`` until the stream ends or a write fails.

        Args:
            produce: Coroutine function returning the final response text.
            sink: Async callable accepting one frame per call.

        Returns:
            True if every frame including the terminal one was written,
            False if a write was rejected or timed out.
        """
        frames = self.frames(produce)
        try:
            async for frame in frames:
                try:
                    await asyncio.wait_for(sink(frame), timeout=self.write_timeout)
                except (TimeoutError, asyncio.TimeoutError):
                    logger.error(f"[{self._label}] Sink write timed out; aborting stream")
                    return False
                except Exception as e:
                    logger.error(f"[{self._label}] Sink rejected write: {e}")
                    return False
        finally:
            await frames.aclose()
        return True
