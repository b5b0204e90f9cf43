"""Service wiring shared by the API routes."""

import logging
from dataclasses import dataclass

from fastapi import Request

from agent_relay.backend import BackendGateway, build_token_provider
from agent_relay.config import RelaySettings, get_settings
from agent_relay.streaming.emitter import ResponseEmitter
from agent_relay.threads import FixedWindowRateLimiter, ThreadService
from agent_relay.workflow import ConversationWorkflow

logger = logging.getLogger(__name__)


@dataclass
class RelayServices:
    """Process-wide collaborators for request handling.

    The token cache and rate-limit counters inside are the only state
    shared between concurrent requests.
    """

    settings: RelaySettings
    gateway: BackendGateway
    workflow: ConversationWorkflow
    threads: ThreadService

    @classmethod
    def from_settings(cls, settings: RelaySettings) -> "RelayServices":
        gateway = BackendGateway(settings, build_token_provider(settings))
        rate_limiter = FixedWindowRateLimiter(
            limit=settings.thread_rate_limit,
            window=settings.thread_rate_window,
        )
        return cls(
            settings=settings,
            gateway=gateway,
            workflow=ConversationWorkflow(gateway, settings),
            threads=ThreadService(gateway, rate_limiter),
        )

    def emitter(self, request_id: str) -> ResponseEmitter:
        return ResponseEmitter(
            granularity=self.settings.stream_granularity,
            frame_delay=self.settings.stream_frame_delay,
            write_timeout=self.settings.stream_write_timeout,
            label=request_id,
        )

    async def aclose(self) -> None:
        await self.gateway.aclose()


# Module-level singleton instance
_relay_services: RelayServices | None = None


def get_relay_services() -> RelayServices:
    """Get or create the global relay services from environment settings.

    Raises:
        pydantic.ValidationError: If configuration is missing.
    """
    global _relay_services
    if _relay_services is None:
        _relay_services = RelayServices.from_settings(get_settings())
        logger.info("Relay services initialized")
    return _relay_services


def get_services(request: Request) -> RelayServices:
    """FastAPI dependency returning the app's services."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        services = get_relay_services()
        request.app.state.services = services
    return services
