"""Integration tests for the thread creation and deletion endpoints."""

import httpx
import pytest_check as check
from httpx import AsyncClient

from tests.fakes import FakeUpstream


class TestCreateThread:
    """Integration tests for POST /threads."""

    async def test_create_returns_thread_id(
        self, async_client: AsyncClient, upstream: FakeUpstream
    ) -> None:
        response = await async_client.post("/threads")

        check.equal(response.status_code, 201)
        check.equal(response.json(), {"success": True, "threadId": "thread_1"})
        check.equal(upstream.paths(), ["POST /threads"])

    async def test_eleventh_request_rate_limited(
        self, async_client: AsyncClient, upstream: FakeUpstream
    ) -> None:
        """Eleventh creation from one origin within the window is rejected."""
        headers = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}
        statuses = [
            (await async_client.post("/threads", headers=headers)).status_code for _ in range(10)
        ]

        response = await async_client.post("/threads", headers=headers)

        assert statuses == [201] * 10
        assert response.status_code == 429
        assert response.json() == {
            "success": False,
            "error": "Rate limit exceeded. Max 10 threads per 60 seconds.",
        }
        assert upstream.thread_count == 10

    async def test_rate_limit_is_per_origin(self, async_client: AsyncClient) -> None:
        for _ in range(10):
            await async_client.post("/threads", headers={"X-Forwarded-For": "203.0.113.7"})

        response = await async_client.post("/threads", headers={"X-Forwarded-For": "198.51.100.2"})

        assert response.status_code == 201

    async def test_unreachable_upstream_maps_to_503(
        self, async_client: AsyncClient, upstream: FakeUpstream
    ) -> None:
        upstream.fail_with = httpx.ConnectError("connection refused")

        response = await async_client.post("/threads")

        assert response.status_code == 503
        assert response.json()["success"] is False
        assert "Failed to connect" in response.json()["error"]

    async def test_upstream_error_maps_to_502(
        self, async_client: AsyncClient, upstream: FakeUpstream
    ) -> None:
        upstream.fail_with = httpx.Response(500, text="upstream exploded")

        response = await async_client.post("/threads")

        assert response.status_code == 502
        assert "upstream exploded" in response.json()["error"]


class TestDeleteThread:
    """Integration tests for DELETE /threads."""

    async def test_delete_thread(self, async_client: AsyncClient, upstream: FakeUpstream) -> None:
        response = await async_client.request(
            "DELETE", "/threads", json={"threadId": "thread_42"}
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert upstream.deleted == ["thread_42"]

    async def test_missing_thread_id_is_400(
        self, async_client: AsyncClient, upstream: FakeUpstream
    ) -> None:
        response = await async_client.request("DELETE", "/threads", json={"threadId": "  "})

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Missing threadId"}
        assert upstream.requests == []

    async def test_empty_body_is_400(self, async_client: AsyncClient) -> None:
        response = await async_client.request("DELETE", "/threads")

        assert response.status_code == 400
