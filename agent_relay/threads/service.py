"""Server-side thread creation and deletion."""

import logging

from fastapi import Request

from agent_relay.backend.gateway import BackendGateway
from agent_relay.errors import InvalidRequestError, RateLimitExceeded
from agent_relay.threads.rate_limiter import FixedWindowRateLimiter

logger = logging.getLogger(__name__)


def client_origin(request: Request) -> str:
    """Rate-limit key for a request: first forwarded address, else peer host."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


class ThreadService:
    """Creates and deletes upstream threads on behalf of API clients."""

    def __init__(self, gateway: BackendGateway, rate_limiter: FixedWindowRateLimiter) -> None:
        self._gateway = gateway
        self._rate_limiter = rate_limiter

    async def create(self, origin: str) -> str:
        """Create a thread for ``origin``.

        Raises:
            RateLimitExceeded: The origin used up its creation quota.
        """
        if not await self._rate_limiter.hit(origin):
            logger.warning(f"[Threads] Rate limit exceeded from {origin}")
            raise RateLimitExceeded(
                f"Rate limit exceeded. Max {self._rate_limiter.limit} threads "
                f"per {self._rate_limiter.window:.0f} seconds.",
                key=origin,
            )

        logger.info(f"[Threads] Creating new thread from {origin}")
        thread_id = await self._gateway.create_thread()
        logger.info(f"[Threads] Thread created: {thread_id}")
        return thread_id

    async def delete(self, thread_id: str | None) -> None:
        thread_id = (thread_id or "").strip()
        if not thread_id:
            raise InvalidRequestError("Missing threadId")

        logger.info(f"[Threads] Deleting thread: {thread_id}")
        await self._gateway.delete_thread(thread_id)
        logger.info(f"[Threads] Thread deleted: {thread_id}")
