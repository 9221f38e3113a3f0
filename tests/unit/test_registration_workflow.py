"""
Unit tests for RegistrationWorkflow.

Tests verify:
- Steps advance forward only and end in exactly one terminal step
- Each failure is recorded with its kind at the step it happened
- Lookup failures are never treated as availability
- At most one attempt runs at a time
"""

import asyncio
from decimal import Decimal

import pytest

from registrar.domain.exceptions import AttemptInProgress, ErrorKind, SigningTimeout
from registrar.domain.ports import Network
from registrar.domain.registration import (
    InvalidTransition,
    Outcome,
    RegistrationAttempt,
    RegistrationWorkflow,
    StepChanged,
    WorkflowStep,
    explorer_link,
)
from registrar.domain.pricing import LAMPORTS_PER_SOL

TREASURY = "11111111111111111111111111111112"

SUCCESS_STEPS = [
    WorkflowStep.VALIDATING,
    WorkflowStep.CHECKING_AVAILABILITY,
    WorkflowStep.AWAITING_APPROVAL,
    WorkflowStep.BROADCASTING,
    WorkflowStep.CONFIRMING,
    WorkflowStep.SUCCEEDED,
]


@pytest.fixture
def workflow(session, resolver) -> RegistrationWorkflow:
    return RegistrationWorkflow(session=session, resolver=resolver, treasury_address=TREASURY)


@pytest.fixture
def events(workflow) -> list[StepChanged]:
    recorded: list[StepChanged] = []
    workflow.subscribe(recorded.append)
    return recorded


@pytest.fixture
def connected(session) -> None:
    asyncio.run(session.connect())


def register(workflow: RegistrationWorkflow, name: str) -> RegistrationAttempt:
    return asyncio.run(workflow.register(name))


@pytest.mark.usefixtures("connected")
class TestRegisterSuccess:
    """Tests for a successful attempt."""

    def test_steps_in_order(self, workflow, events) -> None:
        register(workflow, "hello")
        assert [event.step for event in events] == SUCCESS_STEPS
        assert events[0].previous == WorkflowStep.IDLE

    def test_result(self, workflow, rpc, wallet) -> None:
        attempt = register(workflow, "hello")

        assert attempt.outcome == Outcome.SUCCESS
        assert attempt.error is None
        assert attempt.signature == attempt.result.signature
        assert attempt.result.cost == Decimal("0.021")
        assert attempt.result.network == Network.MAIN
        assert attempt.result.explorer_link.endswith(attempt.signature)
        assert attempt.public_address == wallet.address
        assert rpc.sent == [b"signed-bytes"]

    def test_payment_is_transfer_to_treasury(self, workflow, wallet) -> None:
        register(workflow, "abc")
        draft = wallet.signed[0]
        assert draft.recipient == TREASURY
        assert draft.lamports == 101_000_000

    def test_attempt_released(self, workflow) -> None:
        register(workflow, "hello")
        assert workflow.in_progress is False
        assert workflow.active_attempt is None


class TestRegisterFailures:
    """Tests for failed attempts."""

    def test_invalid_name(self, workflow, resolver, events) -> None:
        attempt = register(workflow, "Bad_Name")

        assert attempt.step == WorkflowStep.FAILED
        assert attempt.error.kind == ErrorKind.VALIDATION_ERROR
        assert events[-1].previous == WorkflowStep.VALIDATING
        assert resolver.lookups == []

    @pytest.mark.usefixtures("connected")
    def test_trailing_newline_is_invalid(self, workflow, resolver, rpc) -> None:
        attempt = register(workflow, "abc\n")

        assert attempt.step == WorkflowStep.FAILED
        assert attempt.error.kind == ErrorKind.VALIDATION_ERROR
        assert resolver.lookups == []
        assert rpc.sent == []

    @pytest.mark.usefixtures("connected")
    def test_name_taken(self, workflow, resolver, wallet, events) -> None:
        resolver.taken = {"hello"}

        attempt = register(workflow, "hello")

        assert attempt.error.kind == ErrorKind.NAME_TAKEN
        assert events[-1].previous == WorkflowStep.CHECKING_AVAILABILITY
        assert wallet.signed == []

    @pytest.mark.usefixtures("connected")
    def test_lookup_failure_is_not_availability(self, workflow, resolver, wallet) -> None:
        """An RPC error during lookup fails the attempt as retryable."""
        resolver.error = ConnectionError("rpc unavailable")

        attempt = register(workflow, "hello")

        assert attempt.outcome == Outcome.FAILURE
        assert attempt.error.kind == ErrorKind.LOOKUP_FAILED
        assert attempt.error.retryable is True
        assert wallet.signed == []

    def test_not_connected(self, workflow, events) -> None:
        attempt = register(workflow, "hello")
        assert attempt.error.kind == ErrorKind.NOT_CONNECTED
        assert events[-1].previous == WorkflowStep.AWAITING_APPROVAL

    @pytest.mark.usefixtures("connected")
    def test_insufficient_funds(self, workflow, rpc, wallet) -> None:
        rpc.balance_lamports = LAMPORTS_PER_SOL // 100

        attempt = register(workflow, "hello")

        assert attempt.error.kind == ErrorKind.INSUFFICIENT_FUNDS
        assert attempt.error.message == (
            "Insufficient balance. You need 0.021 SOL but only have 0.0100 SOL"
        )
        assert wallet.signed == []
        assert rpc.sent == []

    @pytest.mark.usefixtures("connected")
    def test_user_rejected_signature(self, workflow, wallet, rpc) -> None:
        wallet.sign_error = RuntimeError("User rejected the request.")

        attempt = register(workflow, "hello")

        assert attempt.error.kind == ErrorKind.USER_REJECTED
        assert rpc.sent == []

    @pytest.mark.usefixtures("connected")
    def test_broadcast_failure(self, workflow, rpc, events) -> None:
        rpc.send_error = RuntimeError("Blockhash not found")

        attempt = register(workflow, "hello")

        assert attempt.error.kind == ErrorKind.BROADCAST_FAILED
        assert attempt.error.message == "Blockhash not found"
        assert events[-1].previous == WorkflowStep.BROADCASTING
        assert attempt.signature is None

    @pytest.mark.usefixtures("connected")
    def test_confirmation_timeout_clears_signature(self, workflow, rpc, events) -> None:
        rpc.confirm_error = SigningTimeout()

        attempt = register(workflow, "hello")

        assert attempt.error.kind == ErrorKind.TIMEOUT
        assert events[-1].previous == WorkflowStep.CONFIRMING
        assert attempt.signature is None
        assert attempt.result is None

    @pytest.mark.usefixtures("connected")
    def test_exactly_one_terminal_step(self, workflow, rpc, events) -> None:
        rpc.send_error = RuntimeError("boom")
        register(workflow, "hello")
        assert sum(1 for event in events if event.step.terminal) == 1


class TestObservers:
    """Tests for observer isolation."""

    @pytest.fixture
    def failing_renderer(self, workflow) -> list[StepChanged]:
        seen: list[StepChanged] = []

        def renderer(event: StepChanged) -> None:
            seen.append(event)
            if event.step.terminal:
                raise RuntimeError("render failed")

        workflow.subscribe(renderer)
        return seen

    @pytest.mark.usefixtures("connected")
    def test_success_returned_when_observer_raises(self, workflow, failing_renderer, events) -> None:
        attempt = register(workflow, "hello")

        assert attempt.step == WorkflowStep.SUCCEEDED
        assert attempt.outcome == Outcome.SUCCESS
        assert events[-1].step == WorkflowStep.SUCCEEDED
        assert workflow.in_progress is False

    def test_failure_returned_when_observer_raises(self, workflow, failing_renderer) -> None:
        attempt = register(workflow, "hello")

        assert attempt.step == WorkflowStep.FAILED
        assert attempt.error.kind == ErrorKind.NOT_CONNECTED
        assert failing_renderer[-1].step == WorkflowStep.FAILED
        assert workflow.in_progress is False

    @pytest.mark.usefixtures("connected")
    def test_async_observer_failure_logged(self, workflow, caplog) -> None:
        async def reporter(event: StepChanged) -> None:
            raise ConnectionError("ledger down")

        workflow.subscribe(reporter)

        with caplog.at_level("ERROR", logger="registrar.domain.registration"):
            attempt = register(workflow, "hello")

        assert attempt.outcome == Outcome.SUCCESS
        assert "Observer failed on SUCCEEDED for hello" in caplog.text


@pytest.mark.usefixtures("connected")
class TestReentrancy:
    """Tests for the one-attempt-at-a-time guard."""

    def test_second_register_rejected_while_active(self, workflow, resolver) -> None:
        async def scenario() -> RegistrationAttempt:
            resolver.gate = asyncio.Event()
            first = asyncio.create_task(workflow.register("hello"))
            while not resolver.lookups:
                await asyncio.sleep(0)

            assert workflow.active_attempt.name == "hello"
            with pytest.raises(AttemptInProgress):
                await workflow.register("other")

            resolver.gate.set()
            return await first

        attempt = asyncio.run(scenario())

        assert attempt.outcome == Outcome.SUCCESS
        assert resolver.lookups == ["hello"]

    def test_new_attempt_after_failure(self, workflow, resolver) -> None:
        resolver.taken = {"hello"}
        first = register(workflow, "hello")
        second = register(workflow, "hello2")

        assert first.outcome == Outcome.FAILURE
        assert second.outcome == Outcome.SUCCESS
        assert first.id != second.id


class TestCheckAvailability:
    """Tests for check_availability()."""

    def test_free_name_has_quote(self, workflow) -> None:
        report = asyncio.run(workflow.check_availability("hello"))
        assert report.available is True
        assert report.quote.total == Decimal("0.021")

    def test_invalid_name_not_looked_up(self, workflow, resolver) -> None:
        report = asyncio.run(workflow.check_availability("-x"))
        assert report.validation.valid is False
        assert report.error.kind == ErrorKind.VALIDATION_ERROR
        assert resolver.lookups == []

    def test_taken_with_suggestions(self, workflow, resolver) -> None:
        resolver.taken = {"alice", "alice1"}

        report = asyncio.run(workflow.check_availability("alice", suggest=True))

        assert report.available is False
        assert report.owner == "owner-address"
        assert [name for name, _ in report.suggestions] == ["alice2", "alicex"]

    def test_lookup_failure_reported(self, workflow, resolver) -> None:
        resolver.error = ConnectionError("down")

        report = asyncio.run(workflow.check_availability("hello"))

        assert report.availability is None
        assert report.available is False
        assert report.error.kind == ErrorKind.LOOKUP_FAILED


class TestAttempt:
    """Tests for RegistrationAttempt transitions and explorer links."""

    def test_backward_transition_rejected(self) -> None:
        attempt = RegistrationAttempt(name="hello")
        attempt.advance(WorkflowStep.BROADCASTING)
        with pytest.raises(InvalidTransition):
            attempt.advance(WorkflowStep.VALIDATING)

    def test_terminal_is_final(self) -> None:
        attempt = RegistrationAttempt(name="hello")
        attempt.advance(WorkflowStep.FAILED)
        with pytest.raises(InvalidTransition):
            attempt.advance(WorkflowStep.FAILED)

    def test_explorer_link(self) -> None:
        assert explorer_link("sig", Network.MAIN) == "https://explorer.solana.com/tx/sig"
        assert explorer_link("sig", Network.TEST) == "https://explorer.solana.com/tx/sig?cluster=devnet"
