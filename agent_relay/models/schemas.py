import json

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class StreamRunRequest(BaseModel):
    """Request payload for the run streaming endpoint.

    Attributes:
        thread_id: Upstream thread the message is appended to.
        content: The user's message. Truncation to ``max_content_length`` happens
            in the workflow.
    """

    model_config = ConfigDict(populate_by_name=True)

    thread_id: str = Field(..., min_length=1, alias="threadId")
    content: str = Field(..., min_length=1)

    @field_validator("thread_id", "content", mode="before")
    @classmethod
    def strip_text(cls, v: str) -> str:
        """Strip whitespace before validation."""
        if isinstance(v, str):
            return v.strip()
        return v


class DeleteThreadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    thread_id: str | None = Field(None, alias="threadId")


class ThreadResponse(BaseModel):
    """Response from thread creation and deletion.

    Attributes:
        success: Whether the operation succeeded.
        thread_id: Identifier of the created thread.
        error: Error message if the operation failed.
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    thread_id: str | None = Field(None, alias="threadId")
    error: str | None = None


class StreamFrame(BaseModel):
    """A single wire unit of the response stream.

    Carries exactly one of a text token, the completion marker, or an error.

    Attributes:
        token: A chunk of response text.
        done: Completion marker; ends the stream.
        error: Error message; ends the stream.
    """

    token: str | None = None
    done: bool | None = None
    error: str | None = None

    @model_validator(mode="after")
    def exactly_one_payload(self) -> "StreamFrame":
        present = [
            self.token is not None,
            self.done is True,
            self.error is not None,
        ]
        if sum(present) != 1:
            raise ValueError("StreamFrame must carry exactly one of token, done, error")
        if self.done is False:
            raise ValueError("done must be true when present")
        return self

    @classmethod
    def of_token(cls, token: str) -> "StreamFrame":
        return cls(token=token)

    @classmethod
    def completion(cls) -> "StreamFrame":
        return cls(done=True)

    @classmethod
    def failure(cls, message: str) -> "StreamFrame":
        return cls(error=message)

    @property
    def is_terminal(self) -> bool:
        return self.token is None

    def to_sse(self) -> str:
        """Encode as a server-sent event line."""
        payload = json.dumps(self.model_dump(exclude_none=True), ensure_ascii=False)
        return f"data: {payload}\n\n"
