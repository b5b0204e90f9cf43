"""Thread creation and deletion endpoints."""

import logging
import time
from typing import Annotated

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.responses import JSONResponse

from agent_relay.api.deps import RelayServices, get_services
from agent_relay.errors import (
    AuthenticationError,
    BackendError,
    InvalidRequestError,
    NetworkError,
    RateLimitExceeded,
    RelayError,
)
from agent_relay.models.schemas import DeleteThreadRequest, ThreadResponse
from agent_relay.threads import client_origin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/threads", tags=["threads"])

NETWORK_ERROR_MESSAGE = "Failed to connect to the agent backend. Check credentials and network."
AUTH_ERROR_MESSAGE = "Authentication failed. Check backend credentials."


def _reply(status_code: int, response: ThreadResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(by_alias=True, exclude_none=True),
    )


_ERROR_STATUS: list[tuple[type[RelayError], int, str | None]] = [
    (RateLimitExceeded, status.HTTP_429_TOO_MANY_REQUESTS, None),
    (InvalidRequestError, status.HTTP_400_BAD_REQUEST, None),
    (NetworkError, status.HTTP_503_SERVICE_UNAVAILABLE, NETWORK_ERROR_MESSAGE),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED, AUTH_ERROR_MESSAGE),
    (BackendError, status.HTTP_502_BAD_GATEWAY, None),
]


def _failure(error: RelayError) -> JSONResponse:
    """Map a relay error onto a status code and user-facing message."""
    for error_type, status_code, message in _ERROR_STATUS:
        if isinstance(error, error_type):
            return _reply(
                status_code, ThreadResponse(success=False, error=message or error.message)
            )
    return _reply(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ThreadResponse(success=False, error=error.message),
    )


@router.post("", response_model=ThreadResponse, status_code=status.HTTP_201_CREATED)
async def create_thread(
    request: Request,
    services: Annotated[RelayServices, Depends(get_services)],
) -> JSONResponse:
    """Create a new conversation thread.

    Rate-limited per client origin.

    Returns:
        ThreadResponse with the new thread id.

    Raises:
        429: Creation quota exhausted for this origin.
        401: Token acquisition failed.
        503: Upstream unreachable.
    """
    origin = client_origin(request)
    started = time.monotonic()
    try:
        thread_id = await services.threads.create(origin)
    except RelayError as e:
        elapsed = (time.monotonic() - started) * 1000
        if not isinstance(e, RateLimitExceeded):
            logger.error(f"[Threads API] Creation error ({elapsed:.0f}ms): {e}")
        return _failure(e)

    return _reply(status.HTTP_201_CREATED, ThreadResponse(success=True, thread_id=thread_id))


@router.delete("", response_model=ThreadResponse)
async def delete_thread(
    services: Annotated[RelayServices, Depends(get_services)],
    body: Annotated[DeleteThreadRequest | None, Body()] = None,
) -> JSONResponse:
    """Delete a conversation thread.

    Raises:
        400: threadId missing or blank.
        500/502: Upstream deletion failed.
    """
    started = time.monotonic()
    try:
        await services.threads.delete(body.thread_id if body else None)
    except RelayError as e:
        elapsed = (time.monotonic() - started) * 1000
        logger.error(f"[Threads API] Deletion error ({elapsed:.0f}ms): {e}")
        return _failure(e)

    return _reply(status.HTTP_200_OK, ThreadResponse(success=True))
