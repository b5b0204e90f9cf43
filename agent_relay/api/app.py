"""FastAPI application factory and configuration.

Main application entry point with lifespan management, middleware,
and router registration.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agent_relay.api.deps import RelayServices
from agent_relay.api.runs import router as runs_router
from agent_relay.api.threads import router as threads_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application startup and shutdown lifecycle.

    Closes the upstream HTTP client on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application while it runs.
    """
    # Startup
    logger.info("Starting Agent Thread Relay API...")
    yield
    # Shutdown
    logger.info("Shutting down Agent Thread Relay API...")
    services: RelayServices | None = getattr(app.state, "services", None)
    if services is not None:
        await services.aclose()


def create_app(services: RelayServices | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        services: Pre-built collaborators. Built lazily from the environment
            on first request when omitted.

    Returns:
        Configured FastAPI application instance.
    """
    application = FastAPI(
        title="Agent Thread Relay API",
        description=(
            "Relays chat messages to a thread/run/message agent backend. "
            "Submits the message, waits for the run to finish, and streams "
            "the agent's reply back as server-sent events."
        ),
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    application.state.services = services

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    application.include_router(threads_router)
    application.include_router(runs_router)

    @application.get("/health")
    async def health_check() -> dict[str, str]:
        """Check service health status."""
        return {"status": "healthy", "service": "agent-thread-relay"}

    return application


app = create_app()
