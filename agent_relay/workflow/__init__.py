"""Client-side orchestration of an externally executed agent run.

Responsibilities:
    - Message submission with step-level retry
    - Run creation and bounded completion polling
    - Message retrieval and response selection
    - Overall request deadline

Maintains clean separation from the HTTP layer.
"""

from agent_relay.workflow.context import RequestContext, new_request_id
from agent_relay.workflow.extraction import (
    FALLBACK_RESPONSE,
    extract_response_text,
    select_response_message,
)
from agent_relay.workflow.orchestrator import ConversationWorkflow, WorkflowResult

__all__ = [
    "FALLBACK_RESPONSE",
    "ConversationWorkflow",
    "RequestContext",
    "WorkflowResult",
    "extract_response_text",
    "new_request_id",
    "select_response_message",
]
