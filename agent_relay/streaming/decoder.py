"""Incremental decoder for the ``data: <json>`` event stream."""

import codecs
import logging

from pydantic import ValidationError

from agent_relay.models.schemas import StreamFrame

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"


class SSEDecoder:
    """Buffered line splitter that turns raw bytes into StreamFrames.

    Reads may end anywhere, including inside a line or a multibyte
    character. The unterminated tail of each read is kept and prefixed to
    the next one.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.skipped = 0

    def feed(self, chunk: bytes) -> list[StreamFrame]:
        """Decode one read and return the complete frames it finished."""
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return self._parse_lines(lines)

    def flush(self) -> list[StreamFrame]:
        """Parse whatever is left once the byte stream has ended."""
        self._buffer += self._decoder.decode(b"", final=True)
        remaining, self._buffer = self._buffer, ""
        return self._parse_lines([remaining])

    def _parse_lines(self, lines: list[str]) -> list[StreamFrame]:
        frames: list[StreamFrame] = []
        for line in lines:
            frame = self._parse_line(line.rstrip("\r"))
            if frame is not None:
                frames.append(frame)
        return frames

    def _parse_line(self, line: str) -> StreamFrame | None:
        if not line.startswith(DATA_PREFIX):
            return None
        payload = line[len(DATA_PREFIX):].lstrip(" ")
        try:
            return StreamFrame.model_validate_json(payload)
        except ValidationError:
            self.skipped += 1
            logger.debug(f"Skipping malformed frame: {payload[:100]!r}")
            return None
