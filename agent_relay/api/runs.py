"""Run streaming endpoint.

Runs the conversation workflow for one message and relays the reply as
server-sent events: ``{token}`` frames, then ``{done: true}`` or a single
``{error}`` frame.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from agent_relay.api.deps import RelayServices, get_services
from agent_relay.models.schemas import StreamRunRequest
from agent_relay.workflow import new_request_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/runs", tags=["runs"])

STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    # Disable proxy buffering so frames reach the client promptly
    "X-Accel-Buffering": "no",
}


@router.post("/stream")
async def stream_run(
    body: StreamRunRequest,
    services: Annotated[RelayServices, Depends(get_services)],
) -> StreamingResponse:
    """Submit a message and stream the agent's reply.

    Args:
        body: Thread id and message content.

    Returns:
        An event stream of JSON frames.
    """
    request_id = new_request_id()
    logger.info(f"[{request_id}] Starting stream for thread: {body.thread_id}")

    async def produce() -> str:
        result = await services.workflow.run(
            body.thread_id, body.content, request_id=request_id
        )
        return result.text

    emitter = services.emitter(request_id)
    return StreamingResponse(
        emitter.stream(produce),
        media_type="text/event-stream",
        headers={**STREAM_HEADERS, "X-Request-ID": request_id},
    )
