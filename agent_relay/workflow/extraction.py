"""Selecting the run's reply out of a thread's message history.

The upstream does not guarantee ordering, so selection never relies on list
position: candidates are ranked by ``(created_at, id)`` descending.
"""

import logging
from collections.abc import Iterable

from agent_relay.models.threads import ThreadMessage

logger = logging.getLogger(__name__)

FALLBACK_RESPONSE = "I encountered an issue processing your request. Please try again."


def _latest(messages: Iterable[ThreadMessage]) -> ThreadMessage | None:
    return max(messages, key=lambda m: (m.created_at, m.id), default=None)


def select_response_message(
    messages: list[ThreadMessage],
    run_id: str | None = None,
) -> ThreadMessage | None:
    """Pick the assistant message that answers ``run_id``.

    Args:
        messages: Messages in any order.
        run_id: Run whose reply is wanted.

    Returns:
        The latest assistant message produced by the run, or, when none
        carries that run id, the latest assistant message overall.
        None if there are no assistant messages.
    """
    assistant = [m for m in messages if m.role == "assistant"]
    if run_id:
        matched = _latest(m for m in assistant if m.run_id == run_id)
        if matched is not None:
            return matched
        if assistant:
            logger.warning(f"No assistant message for run {run_id}; using latest")
    return _latest(assistant)


def extract_response_text(
    messages: list[ThreadMessage],
    run_id: str | None = None,
) -> tuple[str, bool]:
    """Return the reply text and whether the fallback was substituted.

    A missing message, a message without a text part, or blank text all
    degrade to FALLBACK_RESPONSE instead of raising.
    """
    message = select_response_message(messages, run_id)
    if message is None:
        logger.warning(f"No assistant message found (run {run_id})")
        return FALLBACK_RESPONSE, True

    text = message.first_text
    if not text or not text.strip():
        logger.warning(f"Assistant message {message.id} has no text content")
        return FALLBACK_RESPONSE, True

    return text, False
