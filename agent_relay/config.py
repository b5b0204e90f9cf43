"""Relay configuration with environment variable loading.

Pydantic-based settings for the backend gateway, token provider, workflow
orchestrator, stream emitter, and thread lifecycle. Required values are
validated once at process start; a missing value is fatal for the process.
"""

import os
from enum import Enum

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from agent_relay.streaming.tokens import Granularity

# Load environment variables from .env file
load_dotenv()

DEFAULT_API_VERSION = "2025-05-01"
DEFAULT_TOKEN_SCOPE = "https://ai.azure.com/.default"


class MessageScope(str, Enum):
    """Which messages the workflow retrieves after a run completes."""

    RUN = "run"
    THREAD = "thread"


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


class RelaySettings(BaseModel):
    """Configuration for the agent thread relay.

    Attributes:
        project_endpoint: Upstream project URL; request paths are appended to it.
        api_version: Value of the ``api-version`` query parameter.
        agent_id: Assistant identifier used when creating runs.
        tenant_id: OAuth tenant for the client-credential flow.
        client_id: OAuth client identifier.
        client_secret: OAuth client secret.
        token_scope: OAuth scope requested for the bearer token.
        static_token: Fixed bearer token; skips the OAuth flow when set.
    """

    project_endpoint: str = Field(
        default_factory=lambda: os.getenv("AZURE_PROJECT_ENDPOINT", ""),
        description="Upstream project endpoint URL",
    )
    api_version: str = Field(
        default_factory=lambda: os.getenv("AZURE_API_VERSION", DEFAULT_API_VERSION),
    )
    agent_id: str = Field(
        default_factory=lambda: os.getenv("AZURE_AGENT_ID", ""),
        description="Assistant identifier for run creation",
    )
    tenant_id: str = Field(default_factory=lambda: os.getenv("AZURE_TENANT_ID", ""))
    client_id: str = Field(default_factory=lambda: os.getenv("AZURE_CLIENT_ID", ""))
    client_secret: str = Field(
        default_factory=lambda: os.getenv("AZURE_CLIENT_SECRET", ""),
    )
    token_scope: str = Field(
        default_factory=lambda: os.getenv("AZURE_TOKEN_SCOPE", DEFAULT_TOKEN_SCOPE),
    )
    token_refresh_buffer: float = Field(default=300.0, ge=0.0)
    static_token: str | None = Field(
        default_factory=lambda: os.getenv("RELAY_STATIC_TOKEN") or None,
    )

    # Gateway
    gateway_max_attempts: int = Field(
        default_factory=lambda: _env_int("RELAY_GATEWAY_MAX_ATTEMPTS", 3), ge=1, le=10
    )
    gateway_base_delay: float = Field(
        default_factory=lambda: _env_float("RELAY_GATEWAY_BASE_DELAY", 1.0), ge=0.0
    )
    request_timeout: float = Field(default=30.0, gt=0.0)
    error_body_limit: int = Field(default=500, ge=0)

    # Workflow
    submit_max_attempts: int = Field(default=3, ge=1, le=10)
    submit_base_delay: float = Field(
        default_factory=lambda: _env_float("RELAY_SUBMIT_BASE_DELAY", 1.0), ge=0.0
    )
    poll_max_attempts: int = Field(
        default_factory=lambda: _env_int("RELAY_POLL_MAX_ATTEMPTS", 90), ge=1
    )
    poll_interval: float = Field(
        default_factory=lambda: _env_float("RELAY_POLL_INTERVAL", 0.5), ge=0.0
    )
    request_deadline: float = Field(
        default_factory=lambda: _env_float("RELAY_REQUEST_DEADLINE", 60.0), gt=0.0
    )
    max_content_length: int = Field(
        default_factory=lambda: _env_int("RELAY_MAX_CONTENT_LENGTH", 4000), ge=1
    )
    message_scope: MessageScope = Field(
        default_factory=lambda: MessageScope(os.getenv("RELAY_MESSAGE_SCOPE", "run")),
    )

    # Streaming
    stream_granularity: Granularity = Field(
        default_factory=lambda: Granularity(
            os.getenv("RELAY_STREAM_GRANULARITY", Granularity.WORD.value)
        ),
    )
    stream_frame_delay: float = Field(
        default_factory=lambda: _env_float("RELAY_STREAM_FRAME_DELAY", 0.012), ge=0.0
    )
    stream_write_timeout: float = Field(default=10.0, gt=0.0)

    # Thread lifecycle
    thread_rate_limit: int = Field(default=10, ge=1)
    thread_rate_window: float = Field(default=60.0, gt=0.0)
    thread_idle_timeout: float = Field(
        default_factory=lambda: _env_float("THREAD_IDLE_TIMEOUT", 300.0), gt=0.0
    )
    thread_idle_check_interval: float = Field(
        default_factory=lambda: _env_float("THREAD_IDLE_CHECK_INTERVAL", 30.0), gt=0.0
    )

    @field_validator("project_endpoint", "agent_id")
    @classmethod
    def validate_required(cls, v: str, info: ValidationInfo) -> str:
        """Validate that required upstream settings are present."""
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} is required. Set it in .env")
        return v.strip()

    @field_validator("project_endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        """Require an absolute http(s) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("project_endpoint must be an http(s) URL")
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_credentials(self) -> "RelaySettings":
        """Require the OAuth client triple unless a static token is configured."""
        if self.static_token:
            return self
        missing = [
            name
            for name in ("tenant_id", "client_id", "client_secret")
            if not getattr(self, name).strip()
        ]
        if missing:
            raise ValueError(
                "Missing credentials: AZURE_TENANT_ID, AZURE_CLIENT_ID, "
                f"AZURE_CLIENT_SECRET (missing: {', '.join(missing)})"
            )
        return self

    @property
    def run_scoped_messages(self) -> bool:
        return self.message_scope is MessageScope.RUN


_settings: RelaySettings | None = None


def get_settings() -> RelaySettings:
    """Create relay settings from environment, once per process.

    Returns:
        The cached RelaySettings instance.

    Raises:
        pydantic.ValidationError: If required configuration is missing.
    """
    global _settings
    if _settings is None:
        _settings = RelaySettings()
    return _settings


def reset_settings() -> None:
    """Drop cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
