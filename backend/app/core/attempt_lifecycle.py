"""
Attempt lifecycle state machine.

An attempt moves through::

    started -> in_progress -> {completed | abandoned | expired}

Terminal states are final. Time limits are advisory: nothing finalizes an
attempt when its clock runs out. Expiry is observed lazily whenever an
attempt is read or finished, and the caller persists the ``expired``
status at that point.

Every computation here is a pure function of (attempt, test, now). The
current time comes from an injected TimeSource so behaviour near the time
limit can be tested deterministically.

Finish policy:
    A finish request for an attempt that is already terminal succeeds as a
    no-op when it resolves to the stored status, and raises
    AttemptTransitionError when it would change it.
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional, Protocol

from app.core.config import settings
from app.core.datetime_utils import ensure_timezone_aware, utc_now
from app.core.math_utils import round_half_up
from app.models.models import (
    LIVE_ATTEMPT_STATUSES,
    TERMINAL_ATTEMPT_STATUSES,
    Attempt,
    AttemptStatus,
    Test,
)

logger = logging.getLogger(__name__)


class TimeSource(Protocol):
    """Supplies the current time to lifecycle computations."""

    def now(self) -> datetime:
        """Return the current timezone-aware datetime."""
        ...


class SystemTimeSource:
    """TimeSource backed by the system clock (UTC)."""

    def now(self) -> datetime:
        return utc_now()


class FixedTimeSource:
    """TimeSource frozen at a given instant; advance it explicitly."""

    def __init__(self, current: datetime) -> None:
        self.current = ensure_timezone_aware(current)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        """Move the clock forward by a timedelta built from ``kwargs``."""
        self.current = self.current + timedelta(**kwargs)
        return self.current


class AttemptTransitionError(Exception):
    """Raised when a requested status change is not allowed."""

    def __init__(self, current_status: str, requested_status: Optional[str] = None):
        self.current_status = current_status
        self.requested_status = requested_status
        if requested_status:
            message = (
                f"Cannot move attempt from {current_status} to {requested_status}"
            )
        else:
            message = f"Attempt is {current_status} and can no longer be modified"
        super().__init__(message)


@dataclass(frozen=True)
class FinishDecision:
    """Outcome of a finish request."""

    status: AttemptStatus
    already_finished: bool


@dataclass(frozen=True)
class AttemptProgress:
    """Read-only snapshot of an attempt's progress and timing."""

    progress_percentage: int
    time_remaining_seconds: int
    is_nearly_expired: bool
    is_expired: bool
    can_continue: bool
    estimated_completion_minutes: Optional[int]
    time_efficiency: int


def _status(attempt: Attempt) -> AttemptStatus:
    return AttemptStatus(attempt.status)


def next_attempt_number(prior_numbers: Iterable[Optional[int]]) -> int:
    """
    Return the number for a participant's next attempt at a test.

    ``max(prior) + 1``, or 1 when there are no prior attempts. The caller
    must insert under the (user, test, attempt_number) uniqueness constraint
    and retry on conflict, since two concurrent starts can compute the same
    number.
    """
    numbers = [n for n in prior_numbers if n is not None]
    return max(numbers) + 1 if numbers else 1


def progress_percentage(attempt: Attempt) -> int:
    """Share of the test answered, 0-100; 0 when the total is unknown."""
    total = attempt.total_questions or 0
    if total <= 0:
        return 0
    answered = attempt.questions_answered or 0
    return max(0, min(100, round_half_up(answered / total * 100)))


class AttemptLifecycleManager:
    """
    Computes timing and eligibility for attempts and applies transitions.

    Args:
        time_source: Clock used for every "now" comparison
        warning_threshold_seconds: Remaining time at or below which an
            attempt counts as nearly expired
    """

    def __init__(
        self,
        time_source: Optional[TimeSource] = None,
        warning_threshold_seconds: Optional[int] = None,
    ) -> None:
        self.time_source = time_source or SystemTimeSource()
        self.warning_threshold_seconds = (
            warning_threshold_seconds
            if warning_threshold_seconds is not None
            else settings.TIME_WARNING_THRESHOLD_SECONDS
        )

    def now(self) -> datetime:
        return ensure_timezone_aware(self.time_source.now())

    # ------------------------------------------------------------------
    # Time computations
    # ------------------------------------------------------------------

    def elapsed_seconds(self, attempt: Attempt) -> float:
        """Seconds since the attempt started (never negative)."""
        start = ensure_timezone_aware(attempt.start_time)
        return max(0.0, (self.now() - start).total_seconds())

    @staticmethod
    def _limit_seconds(test: Test) -> int:
        return (test.time_limit or 0) * 60

    def _time_exceeded(self, attempt: Attempt, test: Test) -> bool:
        if attempt.end_time is not None:
            return self.now() > ensure_timezone_aware(attempt.end_time)
        return self.elapsed_seconds(attempt) >= self._limit_seconds(test)

    def can_continue(self, attempt: Attempt, test: Test) -> bool:
        """Whether the participant may keep working on the attempt."""
        if _status(attempt) in (AttemptStatus.COMPLETED, AttemptStatus.EXPIRED):
            return False
        if attempt.end_time is not None:
            return self.now() <= ensure_timezone_aware(attempt.end_time)
        return self.elapsed_seconds(attempt) < self._limit_seconds(test)

    def is_expired(self, attempt: Attempt, test: Test) -> bool:
        """Whether the attempt is expired, by status or by its clock."""
        if _status(attempt) == AttemptStatus.EXPIRED:
            return True
        return self._time_exceeded(attempt, test)

    def time_remaining(self, attempt: Attempt, test: Test) -> int:
        """Whole seconds left before the time limit, floored at 0."""
        if attempt.end_time is not None:
            end = ensure_timezone_aware(attempt.end_time)
            remaining = (end - self.now()).total_seconds()
        else:
            remaining = self._limit_seconds(test) - self.elapsed_seconds(attempt)
        return max(0, math.floor(remaining))

    def is_nearly_expired(self, attempt: Attempt, test: Test) -> bool:
        remaining = self.time_remaining(attempt, test)
        return 0 < remaining <= self.warning_threshold_seconds

    def estimate_completion_minutes(self, attempt: Attempt) -> Optional[int]:
        """
        Minutes still needed at the participant's current pace.

        None until at least one question has been answered.
        """
        answered = attempt.questions_answered or 0
        total = attempt.total_questions or 0
        if answered <= 0 or total <= 0:
            return None
        remaining_questions = max(0, total - answered)
        minutes_per_question = self.elapsed_seconds(attempt) / 60 / answered
        return round_half_up(remaining_questions * minutes_per_question)

    def time_efficiency(self, attempt: Attempt, test: Test) -> int:
        """Share of the time limit left unused, 0-100 (100 without a limit)."""
        limit_minutes = test.time_limit or 0
        if limit_minutes <= 0:
            return 100
        spent_seconds = (
            attempt.time_spent
            if attempt.time_spent is not None
            else self.elapsed_seconds(attempt)
        )
        spent_minutes = spent_seconds / 60
        return max(0, round_half_up(100 - spent_minutes / limit_minutes * 100))

    def progress(self, attempt: Attempt, test: Test) -> AttemptProgress:
        """Collect every progress figure for one attempt."""
        return AttemptProgress(
            progress_percentage=progress_percentage(attempt),
            time_remaining_seconds=self.time_remaining(attempt, test),
            is_nearly_expired=self.is_nearly_expired(attempt, test),
            is_expired=self.is_expired(attempt, test),
            can_continue=self.can_continue(attempt, test),
            estimated_completion_minutes=self.estimate_completion_minutes(attempt),
            time_efficiency=self.time_efficiency(attempt, test),
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def initialize(self, attempt: Attempt, test: Test) -> Attempt:
        """Stamp start/end times and the question snapshot on a new attempt."""
        now = self.now()
        attempt.start_time = now
        attempt.end_time = now + timedelta(minutes=test.time_limit or 0)
        attempt.status = AttemptStatus.STARTED
        attempt.questions_answered = 0
        attempt.total_questions = test.total_questions or 0
        return attempt

    def _close(self, attempt: Attempt, status: AttemptStatus) -> None:
        attempt.status = status
        attempt.actual_end_time = self.now()
        attempt.time_spent = int(self.elapsed_seconds(attempt))

    def expire_if_elapsed(self, attempt: Attempt, test: Test) -> bool:
        """
        Persistable lazy expiry: mark a live attempt expired once its time is up.

        Returns:
            True if the attempt status was changed
        """
        if _status(attempt) not in LIVE_ATTEMPT_STATUSES:
            return False
        if not self._time_exceeded(attempt, test):
            return False
        self._close(attempt, AttemptStatus.EXPIRED)
        logger.info(
            f"Attempt {attempt.id} expired after its time limit",
            extra={"attempt_id": attempt.id},
        )
        return True

    def record_answer(self, attempt: Attempt, answered_count: int) -> None:
        """
        Register answer progress: started -> in_progress, refresh the count.

        Raises:
            AttemptTransitionError: If the attempt is already terminal
        """
        current = _status(attempt)
        if current in TERMINAL_ATTEMPT_STATUSES:
            raise AttemptTransitionError(current.value)
        if current == AttemptStatus.STARTED:
            attempt.status = AttemptStatus.IN_PROGRESS
        total = attempt.total_questions
        attempt.questions_answered = (
            min(answered_count, total) if total else answered_count
        )

    def resolve_finish_status(
        self, attempt: Attempt, test: Test, requested: AttemptStatus
    ) -> FinishDecision:
        """
        Decide which terminal status a finish request results in.

        A requested ``completed`` becomes ``expired`` once the time limit has
        passed.

        Raises:
            AttemptTransitionError: If ``requested`` is not terminal, or the
                attempt is terminal with a different status
        """
        requested = AttemptStatus(requested)
        if requested not in TERMINAL_ATTEMPT_STATUSES:
            raise AttemptTransitionError(_status(attempt).value, requested.value)

        resolved = requested
        if requested == AttemptStatus.COMPLETED and self._time_exceeded(attempt, test):
            resolved = AttemptStatus.EXPIRED

        current = _status(attempt)
        if current in TERMINAL_ATTEMPT_STATUSES:
            if current in (requested, resolved):
                return FinishDecision(status=current, already_finished=True)
            raise AttemptTransitionError(current.value, resolved.value)
        return FinishDecision(status=resolved, already_finished=False)

    def finish(
        self, attempt: Attempt, test: Test, requested: AttemptStatus
    ) -> FinishDecision:
        """Apply a finish request; repeated identical requests change nothing."""
        decision = self.resolve_finish_status(attempt, test, requested)
        if not decision.already_finished:
            self._close(attempt, decision.status)
        return decision


def get_lifecycle_manager() -> AttemptLifecycleManager:
    """FastAPI dependency providing a manager on the system clock."""
    return AttemptLifecycleManager(SystemTimeSource())
