"""
Tests for the attempt lifecycle state machine and its time computations.
"""
from datetime import datetime, timedelta, timezone

import pytest

from app.core.attempt_lifecycle import (
    AttemptLifecycleManager,
    AttemptTransitionError,
    FixedTimeSource,
    next_attempt_number,
    progress_percentage,
)
from app.models import Attempt, AttemptStatus
from app.models import Test as TestDefinition

START = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_test(time_limit=30, total_questions=10):
    return TestDefinition(name="Timed", time_limit=time_limit, total_questions=total_questions)


def make_attempt(
    status=AttemptStatus.STARTED,
    time_limit=30,
    answered=0,
    total=10,
    with_end_time=True,
):
    return Attempt(
        id=1,
        status=status,
        start_time=START,
        end_time=START + timedelta(minutes=time_limit) if with_end_time else None,
        questions_answered=answered,
        total_questions=total,
    )


@pytest.fixture
def clock():
    return FixedTimeSource(START)


@pytest.fixture
def manager(clock):
    return AttemptLifecycleManager(time_source=clock)


class TestNextAttemptNumber:
    """Tests for attempt numbering."""

    def test_first_attempt_is_one(self):
        assert next_attempt_number([]) == 1

    def test_next_is_max_plus_one(self):
        assert next_attempt_number([1, 3, 2]) == 4

    def test_ignores_missing_numbers(self):
        assert next_attempt_number([None, 2]) == 3


class TestProgressPercentage:
    """Tests for progress_percentage."""

    def test_partial_progress(self):
        assert progress_percentage(make_attempt(answered=3)) == 30

    def test_rounds_half_up(self):
        """Two of three answered is 66.67% and displays as 67."""
        assert progress_percentage(make_attempt(answered=2, total=3)) == 67

    def test_unknown_total_is_zero(self):
        assert progress_percentage(make_attempt(answered=3, total=0)) == 0

    def test_clamped_to_100(self):
        assert progress_percentage(make_attempt(answered=12, total=10)) == 100


class TestTimeComputations:
    """Tests for remaining time, expiry and warnings."""

    def test_time_remaining_counts_down(self, manager, clock):
        clock.advance(minutes=10)
        assert manager.time_remaining(make_attempt(), make_test()) == 20 * 60

    def test_time_remaining_floors_at_zero(self, manager, clock):
        clock.advance(minutes=45)
        assert manager.time_remaining(make_attempt(), make_test()) == 0

    def test_time_remaining_without_end_time_uses_limit(self, manager, clock):
        clock.advance(minutes=5)
        attempt = make_attempt(with_end_time=False)
        assert manager.time_remaining(attempt, make_test()) == 25 * 60

    def test_nearly_expired_inside_warning_window(self, manager, clock):
        clock.advance(minutes=25)
        assert manager.is_nearly_expired(make_attempt(), make_test()) is True

    def test_not_nearly_expired_just_outside_window(self, manager, clock):
        clock.advance(minutes=24, seconds=59)
        assert manager.is_nearly_expired(make_attempt(), make_test()) is False

    def test_not_nearly_expired_once_time_is_up(self, manager, clock):
        clock.advance(minutes=30)
        assert manager.is_nearly_expired(make_attempt(), make_test()) is False

    def test_can_continue_at_exact_end_time(self, manager, clock):
        clock.advance(minutes=30)
        attempt = make_attempt()
        assert manager.can_continue(attempt, make_test()) is True
        assert manager.is_expired(attempt, make_test()) is False

    def test_expired_after_end_time(self, manager, clock):
        clock.advance(minutes=30, seconds=1)
        attempt = make_attempt()
        assert manager.is_expired(attempt, make_test()) is True
        assert manager.can_continue(attempt, make_test()) is False

    def test_without_end_time_expires_at_limit(self, manager, clock):
        clock.advance(minutes=30)
        attempt = make_attempt(with_end_time=False)
        assert manager.is_expired(attempt, make_test()) is True
        assert manager.can_continue(attempt, make_test()) is False

    @pytest.mark.parametrize(
        "status", [AttemptStatus.COMPLETED, AttemptStatus.EXPIRED]
    )
    def test_finished_attempts_cannot_continue(self, manager, status):
        assert manager.can_continue(make_attempt(status=status), make_test()) is False

    def test_expired_status_is_expired_regardless_of_clock(self, manager):
        attempt = make_attempt(status=AttemptStatus.EXPIRED)
        assert manager.is_expired(attempt, make_test()) is True

    def test_estimate_none_before_first_answer(self, manager, clock):
        clock.advance(minutes=5)
        assert manager.estimate_completion_minutes(make_attempt(answered=0)) is None

    def test_estimate_extrapolates_pace(self, manager, clock):
        """Four answers in ten minutes leaves six answers, i.e. fifteen minutes."""
        clock.advance(minutes=10)
        assert manager.estimate_completion_minutes(make_attempt(answered=4)) == 15

    def test_time_efficiency_uses_elapsed_time(self, manager, clock):
        clock.advance(minutes=15)
        assert manager.time_efficiency(make_attempt(), make_test()) == 50

    def test_time_efficiency_floors_at_zero(self, manager, clock):
        clock.advance(minutes=60)
        assert manager.time_efficiency(make_attempt(), make_test()) == 0

    def test_time_efficiency_without_limit(self, manager):
        assert manager.time_efficiency(make_attempt(), make_test(time_limit=0)) == 100


class TestTransitions:
    """Tests for status transitions."""

    def test_initialize_stamps_times_and_snapshot(self, manager):
        attempt = manager.initialize(Attempt(), make_test(time_limit=45, total_questions=12))

        assert attempt.status == AttemptStatus.STARTED
        assert attempt.start_time == START
        assert attempt.end_time == START + timedelta(minutes=45)
        assert attempt.questions_answered == 0
        assert attempt.total_questions == 12

    def test_record_answer_moves_to_in_progress(self, manager):
        attempt = make_attempt()
        manager.record_answer(attempt, 1)

        assert attempt.status == AttemptStatus.IN_PROGRESS
        assert attempt.questions_answered == 1

    def test_record_answer_caps_at_total(self, manager):
        attempt = make_attempt(status=AttemptStatus.IN_PROGRESS, total=3)
        manager.record_answer(attempt, 5)
        assert attempt.questions_answered == 3

    @pytest.mark.parametrize(
        "status",
        [AttemptStatus.COMPLETED, AttemptStatus.ABANDONED, AttemptStatus.EXPIRED],
    )
    def test_record_answer_rejects_terminal_attempts(self, manager, status):
        with pytest.raises(AttemptTransitionError):
            manager.record_answer(make_attempt(status=status), 1)

    def test_finish_completed_within_time(self, manager, clock):
        clock.advance(minutes=12)
        attempt = make_attempt(status=AttemptStatus.IN_PROGRESS)

        decision = manager.finish(attempt, make_test(), AttemptStatus.COMPLETED)

        assert decision.status == AttemptStatus.COMPLETED
        assert decision.already_finished is False
        assert attempt.status == AttemptStatus.COMPLETED
        assert attempt.actual_end_time == clock.now()
        assert attempt.time_spent == 12 * 60

    def test_finish_after_deadline_becomes_expired(self, manager, clock):
        clock.advance(minutes=31)
        attempt = make_attempt(status=AttemptStatus.IN_PROGRESS)

        decision = manager.finish(attempt, make_test(), AttemptStatus.COMPLETED)

        assert decision.status == AttemptStatus.EXPIRED
        assert attempt.status == AttemptStatus.EXPIRED

    def test_abandon_after_deadline_stays_abandoned(self, manager, clock):
        clock.advance(minutes=31)
        attempt = make_attempt()

        decision = manager.finish(attempt, make_test(), AttemptStatus.ABANDONED)

        assert decision.status == AttemptStatus.ABANDONED

    def test_repeated_finish_is_noop(self, manager, clock):
        clock.advance(minutes=5)
        attempt = make_attempt(status=AttemptStatus.IN_PROGRESS)
        manager.finish(attempt, make_test(), AttemptStatus.COMPLETED)
        first_end = attempt.actual_end_time

        clock.advance(minutes=1)
        decision = manager.finish(attempt, make_test(), AttemptStatus.COMPLETED)

        assert decision.already_finished is True
        assert attempt.actual_end_time == first_end

    def test_repeated_completion_of_expired_attempt_is_noop(self, manager, clock):
        """A late completion resolves to expired, which matches the stored status."""
        clock.advance(minutes=40)
        attempt = make_attempt(status=AttemptStatus.EXPIRED)

        decision = manager.finish(attempt, make_test(), AttemptStatus.COMPLETED)

        assert decision.already_finished is True
        assert decision.status == AttemptStatus.EXPIRED

    def test_conflicting_finish_raises(self, manager):
        attempt = make_attempt(status=AttemptStatus.COMPLETED)

        with pytest.raises(AttemptTransitionError) as exc_info:
            manager.finish(attempt, make_test(), AttemptStatus.ABANDONED)

        assert exc_info.value.current_status == "completed"
        assert attempt.status == AttemptStatus.COMPLETED

    def test_finish_rejects_live_target_status(self, manager):
        with pytest.raises(AttemptTransitionError):
            manager.finish(make_attempt(), make_test(), AttemptStatus.IN_PROGRESS)

    def test_expire_if_elapsed_marks_live_attempt(self, manager, clock):
        clock.advance(minutes=31)
        attempt = make_attempt(status=AttemptStatus.IN_PROGRESS)

        assert manager.expire_if_elapsed(attempt, make_test()) is True
        assert attempt.status == AttemptStatus.EXPIRED
        assert attempt.time_spent == 31 * 60

    def test_expire_if_elapsed_leaves_running_attempt(self, manager, clock):
        clock.advance(minutes=10)
        attempt = make_attempt()

        assert manager.expire_if_elapsed(attempt, make_test()) is False
        assert attempt.status == AttemptStatus.STARTED

    def test_expire_if_elapsed_ignores_terminal_attempt(self, manager, clock):
        clock.advance(minutes=31)
        attempt = make_attempt(status=AttemptStatus.ABANDONED)

        assert manager.expire_if_elapsed(attempt, make_test()) is False
        assert attempt.status == AttemptStatus.ABANDONED


class TestProgressSnapshot:
    """Tests for the combined progress snapshot."""

    def test_snapshot_fields(self, manager, clock):
        clock.advance(minutes=10)
        progress = manager.progress(make_attempt(answered=5), make_test())

        assert progress.progress_percentage == 50
        assert progress.time_remaining_seconds == 20 * 60
        assert progress.is_nearly_expired is False
        assert progress.is_expired is False
        assert progress.can_continue is True
        assert progress.estimated_completion_minutes == 10
        assert progress.time_efficiency == 67
