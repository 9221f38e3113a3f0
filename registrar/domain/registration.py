"""
Registration workflow - name registration state machine.

This module contains the core business logic for registering a name:
availability check, balance check, payment construction, signing,
broadcast and confirmation, exposed as a sequence of observable steps.

Registration State Machine (Forward-Only Transitions)
=====================================================

Steps:
    IDLE -> VALIDATING -> CHECKING_AVAILABILITY -> AWAITING_APPROVAL
         -> BROADCASTING -> CONFIRMING -> SUCCEEDED

FAILED is reachable from any non-terminal step.

Terminal Steps:
- SUCCEEDED: signature and result recorded
- FAILED: error detail recorded

A step is never revisited; retrying means starting a new attempt.
At most one attempt runs at a time per workflow.

Note: Steps advance when the underlying operation completes; there are
no pacing delays between them.
"""

import inspect
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from .exceptions import (
    AttemptInProgress,
    BroadcastFailed,
    ErrorKind,
    InsufficientFunds,
    InvalidName,
    LookupFailed,
    NameTaken,
    NotConnected,
    RegistrarError,
    UnknownError,
    classify_error,
)
from .ports import Availability, NameLookup, NameResolver, Network, TransactionDraft
from .pricing import PriceQuote, price
from .validation import NameValidation, validate
from .wallet import WalletSession

logger = logging.getLogger(__name__)

DEFAULT_EXPLORER_URL = "https://explorer.solana.com/tx/"
SUGGESTION_SUFFIXES = ("1", "2", "x")


class WorkflowStep(str, Enum):
    """Registration attempt steps, in order."""

    IDLE = "IDLE"
    VALIDATING = "VALIDATING"
    CHECKING_AVAILABILITY = "CHECKING_AVAILABILITY"
    AWAITING_APPROVAL = "AWAITING_APPROVAL"
    BROADCASTING = "BROADCASTING"
    CONFIRMING = "CONFIRMING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"

    @property
    def terminal(self) -> bool:
        return self in (WorkflowStep.SUCCEEDED, WorkflowStep.FAILED)


_STEP_ORDER = {step: index for index, step in enumerate(WorkflowStep)}


class Outcome(str, Enum):
    """Attempt outcome."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


class InvalidTransition(RuntimeError):
    """A step change would move an attempt backwards or out of a terminal step."""

    pass


@dataclass(frozen=True)
class ErrorDetail:
    """Failure recorded on an attempt."""

    kind: ErrorKind
    message: str
    retryable: bool = False


@dataclass(frozen=True)
class RegistrationResult:
    """Final result of a successful attempt."""

    signature: str
    name: str
    cost: Decimal
    network: Network
    explorer_link: str
    payment_method: str


@dataclass
class RegistrationAttempt:
    """
    One user-initiated registration.

    Ephemeral: never persisted by the workflow. signature and result
    are set only on success, error only on failure.
    """

    name: str
    payment_method: str = "SOL"
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    step: WorkflowStep = WorkflowStep.IDLE
    outcome: Outcome = Outcome.PENDING
    quote: PriceQuote | None = None
    public_address: str | None = None
    network: Network | None = None
    signature: str | None = None
    result: RegistrationResult | None = None
    error: ErrorDetail | None = None

    def advance(self, step: WorkflowStep) -> WorkflowStep:
        """
        Move forward to step; returns the previous step.

        Raises:
            InvalidTransition: If step is not strictly after the current one
        """
        if self.step.terminal:
            raise InvalidTransition(f"Attempt already {self.step.value}")
        if step != WorkflowStep.FAILED and _STEP_ORDER[step] <= _STEP_ORDER[self.step]:
            raise InvalidTransition(f"Cannot move from {self.step.value} to {step.value}")
        previous = self.step
        self.step = step
        return previous


@dataclass(frozen=True)
class StepChanged:
    """Notification of an attempt changing step."""

    attempt: RegistrationAttempt
    previous: WorkflowStep
    step: WorkflowStep

    @property
    def terminal(self) -> bool:
        return self.step.terminal


@dataclass(frozen=True)
class AvailabilityReport:
    """Result of checking a name without registering it."""

    name: str
    network: Network
    validation: NameValidation
    availability: Availability | None = None
    owner: str | None = None
    quote: PriceQuote | None = None
    error: ErrorDetail | None = None
    suggestions: list[tuple[str, PriceQuote]] = field(default_factory=list)

    @property
    def available(self) -> bool:
        return self.availability == Availability.FREE


WorkflowObserver = Callable[[StepChanged], Any]


def explorer_link(signature: str, network: Network, base_url: str = DEFAULT_EXPLORER_URL) -> str:
    """Block explorer URL for a transaction signature."""
    cluster = "?cluster=devnet" if network == Network.TEST else ""
    return f"{base_url}{signature}{cluster}"


class RegistrationWorkflow:
    """
    Orchestrates a registration attempt through its steps.

    Collaborators are passed in explicitly: the wallet session (which
    shares the selected RPC client through its selector) and the name
    resolver. Observers receive a StepChanged for every transition.
    """

    def __init__(
        self,
        session: WalletSession,
        resolver: NameResolver,
        treasury_address: str,
        commitment: str = "confirmed",
        explorer_url: str = DEFAULT_EXPLORER_URL,
    ) -> None:
        self.session = session
        self.resolver = resolver
        self.treasury_address = treasury_address
        self.commitment = commitment
        self.explorer_url = explorer_url
        self._observers: list[WorkflowObserver] = []
        self._active: RegistrationAttempt | None = None

    @property
    def active_attempt(self) -> RegistrationAttempt | None:
        return self._active

    @property
    def in_progress(self) -> bool:
        return self._active is not None

    def subscribe(self, observer: WorkflowObserver) -> Callable[[], None]:
        """Register an observer; returns a callable that unsubscribes it."""
        self._observers.append(observer)
        return lambda: self._observers.remove(observer)

    async def check_availability(self, name: str, suggest: bool = False) -> AvailabilityReport:
        """
        Validate, look up and quote a name without registering it.

        Args:
            name: Candidate name
            suggest: When the name is taken, look for free alternatives

        Returns:
            AvailabilityReport; lookup failures are reported, never raised
        """
        network = self.session.network
        validation = validate(name)
        if not validation.valid:
            return AvailabilityReport(
                name=name,
                network=network,
                validation=validation,
                error=ErrorDetail(ErrorKind.VALIDATION_ERROR, validation.reason or "Invalid domain name"),
            )

        logger.info("Checking availability for %s on %s", name, network.value)
        try:
            lookup = await self._lookup(name)
        except LookupFailed as e:
            return AvailabilityReport(
                name=name,
                network=network,
                validation=validation,
                error=ErrorDetail(e.kind, e.message, e.retryable),
            )

        if lookup.availability == Availability.TAKEN:
            suggestions = await self.suggest_alternatives(name) if suggest else []
            return AvailabilityReport(
                name=name,
                network=network,
                validation=validation,
                availability=Availability.TAKEN,
                owner=lookup.owner,
                suggestions=suggestions,
            )

        return AvailabilityReport(
            name=name,
            network=network,
            validation=validation,
            availability=Availability.FREE,
            quote=price(name),
        )

    async def suggest_alternatives(self, name: str, limit: int = 3) -> list[tuple[str, PriceQuote]]:
        """Free variants of a taken name, with their quotes."""
        suggestions: list[tuple[str, PriceQuote]] = []
        for suffix in SUGGESTION_SUFFIXES:
            if len(suggestions) >= limit:
                break
            candidate = f"{name}{suffix}"
            if not validate(candidate).valid:
                continue
            try:
                lookup = await self._lookup(candidate)
            except LookupFailed as e:
                logger.info("Skipping suggestion %s: %s", candidate, e.message)
                continue
            if lookup.availability == Availability.FREE:
                suggestions.append((candidate, price(candidate)))
        return suggestions

    async def register(self, name: str, payment_method: str = "SOL") -> RegistrationAttempt:
        """
        Run a registration attempt to a terminal step.

        Failures are recorded on the returned attempt (step FAILED) and
        never raised.

        Raises:
            AttemptInProgress: If another attempt has not finished yet;
                no new attempt is created
        """
        if self._active is not None:
            raise AttemptInProgress(f"Registration of {self._active.name} is still in progress")

        attempt = RegistrationAttempt(name=name, payment_method=payment_method, network=self.session.network)
        self._active = attempt
        try:
            await self._run(attempt)
        finally:
            self._active = None
        return attempt

    async def _run(self, attempt: RegistrationAttempt) -> None:
        logger.info("Registration attempt %s started for %s", attempt.id, attempt.name)
        try:
            await self._enter(attempt, WorkflowStep.VALIDATING)
            validation = validate(attempt.name)
            if not validation.valid:
                raise InvalidName(validation.reason)

            await self._enter(attempt, WorkflowStep.CHECKING_AVAILABILITY)
            lookup = await self._lookup(attempt.name)
            if lookup.availability == Availability.TAKEN:
                raise NameTaken()

            await self._enter(attempt, WorkflowStep.AWAITING_APPROVAL)
            quote = price(attempt.name)
            attempt.quote = quote
            if not self.session.connected:
                raise NotConnected()
            attempt.public_address = self.session.public_address

            balance = await self.session.get_balance()
            if balance < quote.total:
                raise InsufficientFunds(
                    f"Insufficient balance. You need {quote.total} SOL but only have {balance:.4f} SOL"
                )

            draft = TransactionDraft(
                fee_payer=self.session.public_address,
                recipient=self.treasury_address,
                lamports=quote.lamports,
            )
            signed = await self.session.sign(draft)

            await self._enter(attempt, WorkflowStep.BROADCASTING)
            client = self.session.selector.client
            try:
                signature = await client.send_raw_transaction(signed.payload, self.commitment)
            except Exception as e:
                raise _broadcast_error(e) from e
            attempt.signature = signature
            logger.info("Transaction sent on %s: %s", self.session.network.value, signature)

            await self._enter(attempt, WorkflowStep.CONFIRMING)
            try:
                await client.confirm_transaction(
                    signature, self.commitment, signed.last_valid_block_height
                )
            except Exception as e:
                raise _broadcast_error(e) from e
        except RegistrarError as e:
            await self._fail(attempt, e)
            return
        except Exception as e:
            logger.exception("Unexpected error during registration of %s", attempt.name)
            await self._fail(attempt, classify_error(e))
            return

        attempt.result = RegistrationResult(
            signature=signature,
            name=attempt.name,
            cost=quote.total,
            network=self.session.network,
            explorer_link=explorer_link(signature, self.session.network, self.explorer_url),
            payment_method=attempt.payment_method,
        )
        attempt.outcome = Outcome.SUCCESS
        logger.info("Registration of %s confirmed: %s", attempt.name, signature)
        await self._enter(attempt, WorkflowStep.SUCCEEDED)

    async def _lookup(self, name: str) -> NameLookup:
        try:
            return await self.resolver.lookup(name)
        except LookupFailed:
            raise
        except Exception as e:
            raise LookupFailed(f"Failed to check domain availability: {e}") from e

    async def _fail(self, attempt: RegistrationAttempt, error: RegistrarError) -> None:
        attempt.error = ErrorDetail(kind=error.kind, message=error.message, retryable=error.retryable)
        attempt.signature = None
        attempt.outcome = Outcome.FAILURE
        logger.warning(
            "Registration of %s failed at %s: %s (%s)",
            attempt.name,
            attempt.step.value,
            error.message,
            error.kind.value,
        )
        await self._enter(attempt, WorkflowStep.FAILED)

    async def _enter(self, attempt: RegistrationAttempt, step: WorkflowStep) -> None:
        previous = attempt.advance(step)
        event = StepChanged(attempt=attempt, previous=previous, step=step)
        for observer in list(self._observers):
            try:
                result = observer(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Observer failed on %s for %s", step.value, attempt.name)


def _broadcast_error(error: Exception) -> RegistrarError:
    """Classify a submission/confirmation error, defaulting to BroadcastFailed."""
    classified = classify_error(error)
    if isinstance(classified, UnknownError):
        return BroadcastFailed(classified.message)
    return classified
