"""
Status projector - renders workflow steps for display.

The projector owns no workflow logic. Step events become progress
updates over four indicators; terminal events become durable notices
that stay until dismissed. Other notices dismiss themselves after a
delay unless a newer notice replaces them first. Expiry is noticed
on the next poll or event, and the renderer is sent a NoticeDismissed.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Union

from .registration import StepChanged, WorkflowStep

logger = logging.getLogger(__name__)

DEFAULT_DISMISS_AFTER = 5.0

INDICATORS = ("Preparing transaction", "Wallet approval", "Processing", "Confirmation")

# Indicator (0-based) that is active while the attempt is in a step.
_STEP_INDICATOR = {
    WorkflowStep.VALIDATING: 0,
    WorkflowStep.CHECKING_AVAILABILITY: 0,
    WorkflowStep.AWAITING_APPROVAL: 1,
    WorkflowStep.BROADCASTING: 2,
    WorkflowStep.CONFIRMING: 3,
}


class IndicatorState(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class NoticeLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class ProgressUpdate:
    """State of the four progress indicators."""

    name: str
    indicators: tuple[IndicatorState, ...]


@dataclass(frozen=True)
class Notice:
    """User-facing notification. expires_at is None for durable notices."""

    message: str
    level: NoticeLevel
    issued_at: float
    expires_at: float | None = None

    @property
    def durable(self) -> bool:
        return self.expires_at is None


@dataclass(frozen=True)
class NoticeDismissed:
    """The visible notice was cleared, by expiry or by dismiss()."""

    message: str


Display = Union[ProgressUpdate, Notice, NoticeDismissed]


class StatusProjector:
    """
    Workflow observer producing display updates.

    Pass an instance to RegistrationWorkflow.subscribe(). Without a
    render callable, updates are written to the log.
    """

    def __init__(
        self,
        render: Callable[[Display], None] | None = None,
        dismiss_after: float = DEFAULT_DISMISS_AFTER,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._render = render or _log_display
        self._dismiss_after = dismiss_after
        self._clock = clock
        self._notice: Notice | None = None
        self._last_indicator = 0

    def __call__(self, event: StepChanged) -> None:
        self._expire()
        name = event.attempt.name
        if event.step == WorkflowStep.SUCCEEDED:
            self._render(ProgressUpdate(name, (IndicatorState.COMPLETED,) * len(INDICATORS)))
            result = event.attempt.result
            network = result.network.value if result is not None else ""
            self.notify(
                f"Domain {name}.sol registered successfully on {network}!",
                NoticeLevel.SUCCESS,
                durable=True,
            )
            return

        if event.step == WorkflowStep.FAILED:
            failed_at = _STEP_INDICATOR.get(event.previous, self._last_indicator)
            self._render(ProgressUpdate(name, self._indicators(failed_at, IndicatorState.FAILED)))
            error = event.attempt.error
            message = error.message if error is not None else "Transaction failed"
            self.notify(message, NoticeLevel.ERROR, durable=True)
            return

        active = _STEP_INDICATOR.get(event.step)
        if active is None:
            return
        self._last_indicator = active
        self._render(ProgressUpdate(name, self._indicators(active, IndicatorState.ACTIVE)))

    def notify(self, message: str, level: NoticeLevel = NoticeLevel.INFO, durable: bool = False) -> Notice:
        """Show a notice, replacing the current one."""
        now = self._clock()
        notice = Notice(
            message=message,
            level=level,
            issued_at=now,
            expires_at=None if durable else now + self._dismiss_after,
        )
        self._notice = notice
        self._render(notice)
        return notice

    def current_notice(self) -> Notice | None:
        """Visible notice, or None once a transient notice has expired."""
        self._expire()
        return self._notice

    def dismiss(self) -> None:
        if self._notice is not None:
            self._clear()

    def _expire(self) -> None:
        notice = self._notice
        if notice is not None and notice.expires_at is not None and self._clock() >= notice.expires_at:
            self._clear()

    def _clear(self) -> None:
        notice, self._notice = self._notice, None
        self._render(NoticeDismissed(notice.message))

    @staticmethod
    def _indicators(current: int, state: IndicatorState) -> tuple[IndicatorState, ...]:
        states = []
        for index in range(len(INDICATORS)):
            if index < current:
                states.append(IndicatorState.COMPLETED)
            elif index == current:
                states.append(state)
            else:
                states.append(IndicatorState.PENDING)
        return tuple(states)


def _log_display(update: Display) -> None:
    if isinstance(update, Notice):
        logger.info("[%s] %s", update.level.value, update.message)
    elif isinstance(update, NoticeDismissed):
        logger.debug("Dismissed: %s", update.message)
    else:
        logger.info("%s: %s", update.name, ", ".join(state.value for state in update.indicators))
