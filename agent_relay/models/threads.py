"""Upstream thread, run, and message shapes.

Only the fields the relay reads are declared; everything else the upstream
returns is ignored.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RunStatus(str, Enum):
    """Statuses reported for a run."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    CANCELLING = "cancelling"
    COMPLETED = "completed"
    FAILED = "failed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    INCOMPLETE = "incomplete"


FAILED_STATUSES = frozenset(
    {RunStatus.FAILED, RunStatus.EXPIRED, RunStatus.CANCELLED, RunStatus.INCOMPLETE}
)


class Run(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    thread_id: str | None = None
    status: str = RunStatus.QUEUED.value
    created_at: float | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == RunStatus.COMPLETED.value

    @property
    def is_failed(self) -> bool:
        return self.status in {s.value for s in FAILED_STATUSES}


class TextValue(BaseModel):
    model_config = ConfigDict(extra="ignore")

    value: str = ""


class ContentPart(BaseModel):
    """One typed part of a message body."""

    model_config = ConfigDict(extra="ignore")

    type: str
    text: TextValue | None = None


class ThreadMessage(BaseModel):
    """A message stored in a thread.

    Attributes:
        id: Unique message identifier.
        thread_id: Owning thread.
        role: ``user`` or ``assistant``.
        content: Ordered content parts.
        created_at: Creation time in epoch seconds; 0 when the upstream omits it.
        run_id: Run that produced the message, when the upstream reports it.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    thread_id: str | None = None
    role: str
    content: list[ContentPart] = Field(default_factory=list)
    created_at: float = 0
    run_id: str | None = None

    @field_validator("created_at", mode="before")
    @classmethod
    def numeric_timestamp(cls, v: object) -> object:
        """Treat a missing or non-numeric timestamp as 0 instead of rejecting the message."""
        if isinstance(v, bool) or not isinstance(v, int | float):
            return 0
        return v

    @property
    def first_text(self) -> str | None:
        for part in self.content:
            if part.type == "text" and part.text is not None:
                return part.text.value
        return None
