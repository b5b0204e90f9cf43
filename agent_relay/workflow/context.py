"""Per-request state for one workflow invocation."""

import time
import uuid
from collections import defaultdict
from dataclasses import dataclass, field

from agent_relay.errors import InvalidRequestError


def new_request_id() -> str:
    return f"req-{int(time.time() * 1000)}-{uuid.uuid4()}"


@dataclass
class RequestContext:
    """Sanitized input plus bookkeeping for a single orchestration.

    Attributes:
        thread_id: Target thread, stripped.
        content: User message, stripped and truncated.
        request_id: Identifier used in logs and the X-Request-ID header.
        started_at: Monotonic start time.
        attempts: Attempt counter per workflow step.
    """

    thread_id: str
    content: str
    request_id: str = field(default_factory=new_request_id)
    started_at: float = field(default_factory=time.monotonic)
    attempts: dict[str, int] = field(default_factory=lambda: defaultdict(int))

    @classmethod
    def create(
        cls,
        thread_id: str | None,
        content: str | None,
        max_content_length: int = 4000,
        request_id: str | None = None,
    ) -> "RequestContext":
        """Validate and sanitize raw input.

        Raises:
            InvalidRequestError: If thread id or content is missing or blank.
        """
        thread_id = (thread_id or "").strip()
        content = (content or "").strip()
        if not thread_id or not content:
            raise InvalidRequestError("Missing or invalid threadId or content")

        context = cls(thread_id=thread_id, content=content[:max_content_length])
        if request_id:
            context.request_id = request_id
        return context

    def record_attempt(self, step: str) -> int:
        self.attempts[step] += 1
        return self.attempts[step]

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at
