"""Conversation workflow: submit, run, poll, retrieve, extract.

Core state machine behind ``POST /runs/stream``. Each step has its own
failure semantics:

1. **Submit message** - retried with linear backoff on top of the gateway's
   transport retries, since message submission can fail at the business
   level (e.g. a thread still busy with a previous run).

2. **Create run** - single attempt; a missing run id is fatal.

3. **Poll for completion** - bounded attempts at a fixed interval. Transient
   fetch errors are swallowed until the final attempt; terminal failure
   statuses abort immediately.

4. **Retrieve messages** - run-scoped by default, thread-wide when
   configured; anything other than a list is fatal.

5. **Extract response** - never fails; degrades to a fixed fallback reply.

The whole invocation runs under an overall deadline, distinct from the
polling budget.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from agent_relay.config import RelaySettings
from agent_relay.errors import (
    BackendError,
    InvalidMessageFormat,
    MessageSubmissionFailed,
    NetworkError,
    PollingTimeout,
    RunCreationFailed,
    RunFailed,
    WorkflowTimeout,
)
from agent_relay.models.threads import Run, ThreadMessage
from agent_relay.workflow.context import RequestContext
from agent_relay.workflow.extraction import extract_response_text

logger = logging.getLogger(__name__)

GATEWAY_ERRORS = (NetworkError, BackendError)


class RunGateway(Protocol):
    async def add_message(self, thread_id: str, content: str) -> str: ...

    async def create_run(self, thread_id: str) -> Run: ...

    async def get_run(self, thread_id: str, run_id: str) -> Run: ...

    async def list_messages(self, thread_id: str, run_id: str | None = None) -> object: ...


@dataclass(frozen=True)
class WorkflowResult:
    request_id: str
    run_id: str
    text: str
    fallback: bool
    elapsed: float


class ConversationWorkflow:
    """Drives one user message through the upstream run lifecycle.

    Args:
        gateway: Upstream API access.
        settings: Retry, polling, and deadline policy.
        sleep: Awaitable sleep used for backoff and polling; injectable for tests.
    """

    def __init__(
        self,
        gateway: RunGateway,
        settings: RelaySettings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._gateway = gateway
        self._settings = settings
        self._sleep = sleep

    async def run(
        self,
        thread_id: str,
        content: str,
        request_id: str | None = None,
    ) -> WorkflowResult:
        """Run the full workflow for one message.

        Args:
            thread_id: Target thread.
            content: User message; truncated to the configured maximum.
            request_id: Identifier for logs; generated if omitted.

        Returns:
            WorkflowResult with the reply text.

        Raises:
            InvalidRequestError: Blank thread id or content.
            MessageSubmissionFailed, RunCreationFailed, RunFailed,
            PollingTimeout, InvalidMessageFormat: A step failed fatally.
            WorkflowTimeout: The overall deadline elapsed.
        """
        ctx = RequestContext.create(
            thread_id,
            content,
            max_content_length=self._settings.max_content_length,
            request_id=request_id,
        )
        logger.info(f"[{ctx.request_id}] Starting workflow for thread {ctx.thread_id}")

        try:
            async with asyncio.timeout(self._settings.request_deadline):
                return await self._execute(ctx)
        except TimeoutError as e:
            logger.error(
                f"[{ctx.request_id}] Deadline of {self._settings.request_deadline}s exceeded"
            )
            raise WorkflowTimeout(
                f"Request exceeded {self._settings.request_deadline:.0f}s deadline"
            ) from e

    async def _execute(self, ctx: RequestContext) -> WorkflowResult:
        await self.submit_message(ctx)
        run_id = await self.create_run(ctx)
        await self.poll_until_complete(ctx, run_id)
        messages = await self.retrieve_messages(ctx, run_id)

        text, fallback = extract_response_text(messages, run_id)
        logger.info(
            f"[{ctx.request_id}] Extracted {len(text)} chars for run {run_id}"
            f"{' (fallback)' if fallback else ''} in {ctx.elapsed * 1000:.0f}ms"
        )
        return WorkflowResult(
            request_id=ctx.request_id,
            run_id=run_id,
            text=text,
            fallback=fallback,
            elapsed=ctx.elapsed,
        )

    async def submit_message(self, ctx: RequestContext) -> str:
        max_attempts = self._settings.submit_max_attempts
        base_delay = self._settings.submit_base_delay

        def log_retry(retry_state) -> None:
            logger.warning(
                f"[{ctx.request_id}] Retry {retry_state.attempt_number}/{max_attempts}: "
                f"{retry_state.outcome.exception()}"
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_incrementing(start=base_delay, increment=base_delay),
            retry=retry_if_exception_type(GATEWAY_ERRORS),
            before_sleep=log_retry,
            sleep=self._sleep,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    ctx.record_attempt("submit_message")
                    message_id = await self._gateway.add_message(ctx.thread_id, ctx.content)
        except RetryError as e:
            last = e.last_attempt.exception()
            raise MessageSubmissionFailed(
                f"Failed to add message after {max_attempts} attempts: {last}"
            ) from last

        logger.info(f"[{ctx.request_id}] Message added: {message_id}")
        return message_id

    async def create_run(self, ctx: RequestContext) -> str:
        ctx.record_attempt("create_run")
        try:
            run = await self._gateway.create_run(ctx.thread_id)
        except GATEWAY_ERRORS as e:
            raise RunCreationFailed(f"Failed to create run: {e}") from e

        if not run.id:
            raise RunCreationFailed("Failed to create run: no run id returned")
        logger.info(f"[{ctx.request_id}] Run created: {run.id}")
        return run.id

    async def poll_until_complete(self, ctx: RequestContext, run_id: str) -> None:
        """Poll the run until it completes.

        Raises:
            RunFailed: The run reached a terminal failure status.
            PollingTimeout: The attempt budget ran out, or the final fetch failed.
        """
        max_attempts = self._settings.poll_max_attempts
        interval = self._settings.poll_interval

        for attempt in range(1, max_attempts + 1):
            ctx.record_attempt("poll")
            last_attempt = attempt == max_attempts
            try:
                run = await self._gateway.get_run(ctx.thread_id, run_id)
            except GATEWAY_ERRORS as e:
                if last_attempt:
                    raise PollingTimeout(
                        f"Polling failed on final attempt: {e}", run_id=run_id
                    ) from e
                logger.warning(f"[{ctx.request_id}] Poll attempt {attempt} failed: {e}")
            else:
                if run.is_completed:
                    logger.info(
                        f"[{ctx.request_id}] Run completed at attempt {attempt} "
                        f"after {ctx.elapsed * 1000:.0f}ms"
                    )
                    return
                if run.is_failed:
                    logger.error(f"[{ctx.request_id}] Run {run_id} {run.status}")
                    raise RunFailed(run_id, run.status)

            if not last_attempt:
                await self._sleep(interval)

        raise PollingTimeout(
            f"Run polling timeout after {max_attempts * interval:.1f}s", run_id=run_id
        )

    async def retrieve_messages(self, ctx: RequestContext, run_id: str) -> list[ThreadMessage]:
        ctx.record_attempt("retrieve_messages")
        scoped_run = run_id if self._settings.run_scoped_messages else None
        try:
            raw = await self._gateway.list_messages(ctx.thread_id, scoped_run)
        except GATEWAY_ERRORS as e:
            raise InvalidMessageFormat(f"Failed to get messages: {e}") from e

        if not isinstance(raw, list):
            raise InvalidMessageFormat("Invalid messages format")

        messages: list[ThreadMessage] = []
        for item in raw:
            try:
                messages.append(ThreadMessage.model_validate(item))
            except ValidationError as e:
                logger.warning(f"[{ctx.request_id}] Skipping malformed message: {e}")

        logger.info(f"[{ctx.request_id}] Retrieved {len(messages)} messages for run {run_id}")
        return messages
