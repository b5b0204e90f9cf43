"""Pydantic models for API requests, stream frames, and upstream payloads.

Provides type safety, validation, and automatic OpenAPI documentation.

Models:
    - StreamRunRequest: Incoming run stream request payload
    - ThreadResponse: Thread creation/deletion result
    - StreamFrame: One SSE frame (token, done, or error)
    - Run, ThreadMessage: Upstream run and message shapes
"""

from agent_relay.models.schemas import (
    DeleteThreadRequest,
    StreamFrame,
    StreamRunRequest,
    ThreadResponse,
)
from agent_relay.models.threads import ContentPart, Run, RunStatus, ThreadMessage

__all__ = [
    "ContentPart",
    "DeleteThreadRequest",
    "Run",
    "RunStatus",
    "StreamFrame",
    "StreamRunRequest",
    "ThreadMessage",
    "ThreadResponse",
]
