"""Pytest fixtures and shared test configuration.

Provides reusable fixtures for unit and integration tests.

Fixtures:
    - settings: RelaySettings with zero delays and a static token
    - upstream: Scripted in-memory upstream API
    - gateway: BackendGateway wired to the upstream through MockTransport
    - services / app / async_client: The API wired end to end over ASGI
    - recorded_sleep: Awaitable sleep that records delays without waiting

Implements async fixtures with proper cleanup.
"""

from collections.abc import AsyncGenerator

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from agent_relay.api.app import create_app
from agent_relay.api.deps import RelayServices
from agent_relay.backend import BackendGateway, StaticTokenProvider
from agent_relay.config import RelaySettings
from agent_relay.threads import FixedWindowRateLimiter, ThreadService
from agent_relay.workflow import ConversationWorkflow
from tests.fakes import UPSTREAM_ENDPOINT, FakeUpstream


def make_settings(**overrides) -> RelaySettings:
    values = {
        "project_endpoint": UPSTREAM_ENDPOINT,
        "agent_id": "asst_test",
        "static_token": "test-token",
        "tenant_id": "",
        "client_id": "",
        "client_secret": "",
        "gateway_base_delay": 0.0,
        "submit_base_delay": 0.0,
        "poll_interval": 0.0,
        "poll_max_attempts": 5,
        "request_deadline": 5.0,
        "stream_frame_delay": 0.0,
    }
    values.update(overrides)
    return RelaySettings(**values)


class RecordedSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def settings() -> RelaySettings:
    return make_settings()


@pytest.fixture
def recorded_sleep() -> RecordedSleep:
    return RecordedSleep()


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def token_provider() -> StaticTokenProvider:
    return StaticTokenProvider("test-token")


@pytest.fixture
async def gateway(
    settings: RelaySettings,
    upstream: FakeUpstream,
    token_provider: StaticTokenProvider,
) -> AsyncGenerator[BackendGateway]:
    client = httpx.AsyncClient(transport=upstream.transport())
    yield BackendGateway(settings, token_provider, client=client)
    await client.aclose()


@pytest.fixture
def services(settings: RelaySettings, gateway: BackendGateway) -> RelayServices:
    return RelayServices(
        settings=settings,
        gateway=gateway,
        workflow=ConversationWorkflow(gateway, settings),
        threads=ThreadService(gateway, FixedWindowRateLimiter(limit=10, window=60.0)),
    )


@pytest.fixture
def app(services: RelayServices) -> FastAPI:
    return create_app(services)


@pytest.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for API testing.

    Yields:
        Configured AsyncClient for making test requests.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
