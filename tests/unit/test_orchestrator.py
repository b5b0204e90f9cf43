"""Unit tests for ConversationWorkflow.

Drives the workflow against a scripted gateway with a recording sleep, so
retry and polling schedules are asserted without waiting.
"""

import asyncio

import pytest
import pytest_check as check

from agent_relay.config import MessageScope
from agent_relay.errors import (
    BackendError,
    ErrorKind,
    InvalidMessageFormat,
    InvalidRequestError,
    MessageSubmissionFailed,
    NetworkError,
    PollingTimeout,
    RunCreationFailed,
    RunFailed,
    WorkflowTimeout,
)
from agent_relay.workflow import FALLBACK_RESPONSE, ConversationWorkflow
from tests.conftest import RecordedSleep, make_settings
from tests.fakes import FakeGateway, assistant_message


def workflow_for(gateway: FakeGateway, sleep: RecordedSleep | None = None, **overrides):
    settings = make_settings(**overrides)
    return ConversationWorkflow(gateway, settings, sleep=sleep or RecordedSleep())


class TestHappyPath:
    """Tests for a run that completes normally."""

    async def test_returns_assistant_reply(self) -> None:
        gateway = FakeGateway(statuses=["completed"])
        workflow = workflow_for(gateway)

        result = await workflow.run("thread_1", "Hello")

        check.equal(result.text, "Hello from the agent")
        check.equal(result.run_id, "run_1")
        check.is_false(result.fallback)
        check.equal(gateway.calls, ["add_message", "create_run", "get_run", "list_messages"])

    async def test_polls_until_completed(self, recorded_sleep: RecordedSleep) -> None:
        gateway = FakeGateway(statuses=["queued", "queued", "in_progress", "completed"])
        workflow = workflow_for(gateway, recorded_sleep, poll_interval=0.2)

        await workflow.run("thread_1", "Hello")

        assert gateway.count("get_run") == 4
        assert recorded_sleep.delays == [0.2, 0.2, 0.2]

    async def test_request_id_is_kept(self) -> None:
        workflow = workflow_for(FakeGateway())

        result = await workflow.run("thread_1", "Hello", request_id="req-abc")

        assert result.request_id == "req-abc"

    async def test_input_is_stripped_and_truncated(self) -> None:
        gateway = FakeGateway()
        workflow = workflow_for(gateway, max_content_length=10)

        await workflow.run("  thread_1  ", "   " + "a" * 50 + "   ")

        assert gateway.submitted == ["a" * 10]

    @pytest.mark.parametrize(
        ("thread_id", "content"),
        [("", "Hello"), ("   ", "Hello"), ("thread_1", ""), ("thread_1", "  \n ")],
    )
    async def test_blank_input_rejected(self, thread_id: str, content: str) -> None:
        gateway = FakeGateway()
        workflow = workflow_for(gateway)

        with pytest.raises(InvalidRequestError):
            await workflow.run(thread_id, content)

        assert gateway.calls == []


class TestSubmitMessage:
    """Tests for the message submission retry policy."""

    async def test_retries_with_linear_backoff(self, recorded_sleep: RecordedSleep) -> None:
        gateway = FakeGateway(add_message_failures=2)
        workflow = workflow_for(gateway, recorded_sleep, submit_base_delay=1.0)

        result = await workflow.run("thread_1", "Hello")

        assert result.text == "Hello from the agent"
        assert gateway.count("add_message") == 3
        assert recorded_sleep.delays == [1.0, 2.0]

    async def test_exhaustion_raises_submission_failed(self) -> None:
        gateway = FakeGateway(add_message_failures=5)
        workflow = workflow_for(gateway)

        with pytest.raises(MessageSubmissionFailed) as exc_info:
            await workflow.run("thread_1", "Hello")

        error = exc_info.value
        check.equal(gateway.count("add_message"), 3)
        check.equal(gateway.count("create_run"), 0)
        check.equal(error.kind, ErrorKind.MESSAGE_SUBMISSION_FAILED)
        check.is_in("after 3 attempts", error.message)
        check.is_instance(error.__cause__, NetworkError)


class TestCreateRun:
    """Tests for run creation."""

    async def test_gateway_error_raises_run_creation_failed(self) -> None:
        gateway = FakeGateway(create_run_result=BackendError("boom", status_code=500))
        workflow = workflow_for(gateway)

        with pytest.raises(RunCreationFailed):
            await workflow.run("thread_1", "Hello")

        assert gateway.count("create_run") == 1
        assert gateway.count("get_run") == 0


class TestPolling:
    """Tests for run status polling."""

    async def test_failed_status_aborts_immediately(self) -> None:
        gateway = FakeGateway(statuses=["in_progress", "failed"])
        workflow = workflow_for(gateway)

        with pytest.raises(RunFailed) as exc_info:
            await workflow.run("thread_1", "Hello")

        assert gateway.count("get_run") == 2
        assert gateway.count("list_messages") == 0
        assert exc_info.value.message == "Run failed: run_1"

    @pytest.mark.parametrize("status", ["expired", "cancelled", "incomplete"])
    async def test_other_terminal_statuses_fail(self, status: str) -> None:
        workflow = workflow_for(FakeGateway(statuses=[status]))

        with pytest.raises(RunFailed) as exc_info:
            await workflow.run("thread_1", "Hello")

        assert exc_info.value.status == status

    async def test_budget_exhaustion_raises_polling_timeout(
        self, recorded_sleep: RecordedSleep
    ) -> None:
        gateway = FakeGateway(statuses=["in_progress"] * 10)
        workflow = workflow_for(gateway, recorded_sleep, poll_max_attempts=5, poll_interval=0.2)

        with pytest.raises(PollingTimeout) as exc_info:
            await workflow.run("thread_1", "Hello")

        assert gateway.count("get_run") == 5
        assert gateway.count("list_messages") == 0
        assert len(recorded_sleep.delays) == 4
        assert exc_info.value.run_id == "run_1"

    async def test_transient_fetch_error_is_swallowed(self) -> None:
        gateway = FakeGateway(statuses=[NetworkError("reset"), "in_progress", "completed"])
        workflow = workflow_for(gateway)

        result = await workflow.run("thread_1", "Hello")

        assert result.text == "Hello from the agent"
        assert gateway.count("get_run") == 3

    async def test_fetch_error_on_final_attempt_raises(self) -> None:
        gateway = FakeGateway(statuses=["in_progress", "in_progress", NetworkError("reset")])
        workflow = workflow_for(gateway, poll_max_attempts=3)

        with pytest.raises(PollingTimeout) as exc_info:
            await workflow.run("thread_1", "Hello")

        assert isinstance(exc_info.value.__cause__, NetworkError)


class TestRetrieveMessages:
    """Tests for message retrieval and extraction."""

    async def test_messages_scoped_to_run(self) -> None:
        gateway = FakeGateway()
        await workflow_for(gateway).run("thread_1", "Hello")

        assert gateway.list_messages_args == [("thread_1", "run_1")]

    async def test_thread_scope_lists_whole_thread(self) -> None:
        gateway = FakeGateway()
        await workflow_for(gateway, message_scope=MessageScope.THREAD).run("thread_1", "Hello")

        assert gateway.list_messages_args == [("thread_1", None)]

    async def test_non_list_response_is_invalid_format(self) -> None:
        gateway = FakeGateway(messages={"data": "nope"})

        with pytest.raises(InvalidMessageFormat):
            await workflow_for(gateway).run("thread_1", "Hello")

    async def test_listing_error_is_invalid_format(self) -> None:
        class FailingListGateway(FakeGateway):
            async def list_messages(self, thread_id, run_id=None):
                raise BackendError("Backend error (500): down", status_code=500)

        with pytest.raises(InvalidMessageFormat):
            await workflow_for(FailingListGateway()).run("thread_1", "Hello")

    async def test_malformed_items_are_skipped(self) -> None:
        gateway = FakeGateway(
            messages=[
                {"role": "assistant"},
                assistant_message("msg_ok", "Still here", 5, run_id="run_1"),
            ]
        )

        result = await workflow_for(gateway).run("thread_1", "Hello")

        assert result.text == "Still here"

    async def test_reply_without_timestamp_is_kept(self) -> None:
        gateway = FakeGateway(
            messages=[assistant_message("msg_a", "real reply", None, run_id="run_1")]
        )

        result = await workflow_for(gateway).run("thread_1", "Hello")

        assert result.text == "real reply"
        assert result.fallback is False

    async def test_no_assistant_message_uses_fallback(self) -> None:
        gateway = FakeGateway(messages=[])

        result = await workflow_for(gateway).run("thread_1", "Hello")

        assert result.text == FALLBACK_RESPONSE
        assert result.fallback is True


class TestDeadline:
    """Tests for the overall request deadline."""

    async def test_deadline_raises_workflow_timeout(self) -> None:
        gateway = FakeGateway(statuses=["in_progress"] * 100)
        settings = make_settings(request_deadline=0.05, poll_interval=0.01, poll_max_attempts=100)
        workflow = ConversationWorkflow(gateway, settings, sleep=asyncio.sleep)

        with pytest.raises(WorkflowTimeout) as exc_info:
            await workflow.run("thread_1", "Hello")

        assert exc_info.value.kind == ErrorKind.WORKFLOW_TIMEOUT
        assert gateway.count("list_messages") == 0
