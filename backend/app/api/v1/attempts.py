"""
Test attempt endpoints: start, answer, progress and finish.

Expiry is detected lazily. Every endpoint that loads a live attempt first
checks its clock and persists ``expired`` when the time limit has passed.
"""
import logging
from typing import Optional, Tuple

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.analytics import AnalyticsTracker
from app.core.attempt_lifecycle import (
    AttemptLifecycleManager,
    AttemptTransitionError,
    get_lifecycle_manager,
    next_attempt_number,
)
from app.core.auth import get_current_user
from app.core.config import settings
from app.core.datetime_utils import ensure_timezone_aware
from app.core.db_error_handling import async_handle_db_error
from app.core.error_responses import (
    ErrorMessages,
    raise_bad_request,
    raise_conflict,
    raise_for_scoring_error,
    raise_forbidden,
    raise_not_found,
)
from app.core.scoring import (
    ResultConflictError,
    ScoringError,
    calculate_answer_score,
    calculate_result,
    validate_answer_for_question_type,
)
from app.models import (
    Answer,
    AssessmentSession,
    Attempt,
    AttemptStatus,
    Question,
    SessionModule,
    SessionStatus,
    Test,
    TestResult,
    TestStatus,
    User,
    get_db,
)
from app.models.models import LIVE_ATTEMPT_STATUSES, TERMINAL_ATTEMPT_STATUSES
from app.schemas.attempts import (
    AnswerResponse,
    AttemptProgressResponse,
    AttemptResponse,
    FinishAttemptRequest,
    FinishAttemptResponse,
    NextTestInfo,
    StartAttemptRequest,
    StartAttemptResponse,
    SubmitAnswerRequest,
    SubmitAnswerResponse,
)
from app.schemas.results import TestResultResponse

router = APIRouter()
logger = logging.getLogger(__name__)


def build_progress_response(
    lifecycle: AttemptLifecycleManager, attempt: Attempt, test: Test
) -> AttemptProgressResponse:
    progress = lifecycle.progress(attempt, test)
    return AttemptProgressResponse(
        attempt_id=attempt.id,
        status=attempt.status,
        questions_answered=attempt.questions_answered or 0,
        total_questions=attempt.total_questions,
        progress_percentage=progress.progress_percentage,
        time_remaining_seconds=progress.time_remaining_seconds,
        is_nearly_expired=progress.is_nearly_expired,
        is_expired=progress.is_expired,
        can_continue=progress.can_continue,
        estimated_completion_minutes=progress.estimated_completion_minutes,
        time_efficiency=progress.time_efficiency,
    )


async def get_owned_attempt(
    db: AsyncSession, attempt_id: int, user_id: int
) -> Tuple[Attempt, Test]:
    """
    Load an attempt and its test, enforcing ownership.

    Raises:
        HTTPException: 404 if the attempt or its test is missing, 403 if the
            attempt belongs to another participant
    """
    attempt = await db.get(Attempt, attempt_id)
    if attempt is None:
        raise_not_found(ErrorMessages.ATTEMPT_NOT_FOUND)
    if attempt.user_id != user_id:
        raise_forbidden(ErrorMessages.ATTEMPT_ACCESS_DENIED)

    test = await db.get(Test, attempt.test_id)
    if test is None:
        raise_not_found(ErrorMessages.TEST_NOT_FOUND)
    return attempt, test


async def expire_if_elapsed(
    db: AsyncSession, lifecycle: AttemptLifecycleManager, attempt: Attempt, test: Test
) -> bool:
    """Persist lazy expiry; returns True if the attempt was just expired."""
    if not lifecycle.expire_if_elapsed(attempt, test):
        return False
    await db.commit()
    AnalyticsTracker.track_attempt_expired(user_id=attempt.user_id, attempt_id=attempt.id)
    return True


async def _resolve_session_id(
    db: AsyncSession,
    lifecycle: AttemptLifecycleManager,
    session_code: str,
    test_id: int,
) -> int:
    session = (
        await db.execute(
            select(AssessmentSession).where(
                AssessmentSession.session_code == session_code
            )
        )
    ).scalar_one_or_none()
    if session is None:
        raise_bad_request(ErrorMessages.INVALID_SESSION)

    now = lifecycle.now()
    if (
        session.status != SessionStatus.ACTIVE
        or now < ensure_timezone_aware(session.start_time)
        or now > ensure_timezone_aware(session.end_time)
    ):
        raise_bad_request(ErrorMessages.SESSION_NOT_ACTIVE)

    module_id = (
        await db.execute(
            select(SessionModule.id).where(
                SessionModule.session_id == session.id,
                SessionModule.test_id == test_id,
            )
        )
    ).scalar_one_or_none()
    if module_id is None:
        raise_bad_request(ErrorMessages.INVALID_SESSION)
    return session.id


async def _create_attempt(
    db: AsyncSession,
    lifecycle: AttemptLifecycleManager,
    user_id: int,
    test: Test,
    session_id: Optional[int],
) -> Attempt:
    """
    Insert the participant's next attempt at a test.

    Attempt numbers are guarded by the (user, test, attempt_number) unique
    constraint; a concurrent start that takes the same number makes the
    flush fail, and the number is recomputed.
    """
    test_id = test.id
    for retry in range(settings.ATTEMPT_NUMBER_MAX_RETRIES):
        prior_numbers = (
            await db.execute(
                select(Attempt.attempt_number).where(
                    Attempt.user_id == user_id, Attempt.test_id == test_id
                )
            )
        ).scalars().all()

        attempt = Attempt(
            user_id=user_id,
            test_id=test_id,
            session_id=session_id,
            attempt_number=next_attempt_number(prior_numbers),
        )
        lifecycle.initialize(attempt, test)
        db.add(attempt)
        try:
            await db.flush()
            return attempt
        except IntegrityError:
            await db.rollback()
            await db.refresh(test)
            logger.warning(
                f"Attempt number {attempt.attempt_number} for user {user_id} on "
                f"test {test_id} was taken concurrently (retry {retry + 1})",
                extra={"user_id": user_id},
            )

    raise_conflict(ErrorMessages.ATTEMPT_NUMBER_CONFLICT)


@router.post("/start", response_model=StartAttemptResponse)
async def start_attempt(
    request: StartAttemptRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    lifecycle: AttemptLifecycleManager = Depends(get_lifecycle_manager),
):
    """
    Start a test, or resume the participant's live attempt at it.

    A live attempt whose time has run out is expired first, and a new
    attempt is created in its place.

    Raises:
        HTTPException: 404 if the test does not exist, 400 if it is inactive
            or the session code is invalid, 409 if attempt numbering keeps
            conflicting
    """
    user_id = current_user.id

    test = await db.get(Test, request.test_id)
    if test is None:
        raise_not_found(ErrorMessages.TEST_NOT_FOUND)
    if test.status != TestStatus.ACTIVE:
        raise_bad_request(ErrorMessages.TEST_NOT_ACTIVE)

    session_id = None
    if request.session_code:
        session_id = await _resolve_session_id(
            db, lifecycle, request.session_code, test.id
        )

    live = (
        await db.execute(
            select(Attempt)
            .where(
                Attempt.user_id == user_id,
                Attempt.test_id == test.id,
                Attempt.status.in_(LIVE_ATTEMPT_STATUSES),
            )
            .order_by(Attempt.attempt_number.desc())
            .limit(1)
        )
    ).scalar_one_or_none()

    if live is not None and not await expire_if_elapsed(db, lifecycle, live, test):
        AnalyticsTracker.track_attempt_resumed(user_id=user_id, attempt_id=live.id)
        return StartAttemptResponse(
            attempt=AttemptResponse.model_validate(live),
            resumed=True,
            progress=build_progress_response(lifecycle, live, test),
        )

    async with async_handle_db_error(db, "start test attempt"):
        attempt = await _create_attempt(db, lifecycle, user_id, test, session_id)
        await db.commit()
        await db.refresh(attempt)

        logger.info(
            f"User {user_id} started attempt {attempt.attempt_number} "
            f"at test {test.id}",
            extra={"user_id": user_id, "attempt_id": attempt.id},
        )
        AnalyticsTracker.track_attempt_started(
            user_id=user_id,
            attempt_id=attempt.id,
            test_id=test.id,
            attempt_number=attempt.attempt_number,
        )
        return StartAttemptResponse(
            attempt=AttemptResponse.model_validate(attempt),
            resumed=False,
            progress=build_progress_response(lifecycle, attempt, test),
        )


@router.post("/{attempt_id}/answers", response_model=SubmitAnswerResponse)
async def submit_answer(
    attempt_id: int,
    request: SubmitAnswerRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    lifecycle: AttemptLifecycleManager = Depends(get_lifecycle_manager),
):
    """
    Save (or replace) the answer to one question of a live attempt.

    The answer is scored immediately; the attempt moves to in_progress and
    its answered count is refreshed.

    Raises:
        HTTPException: 404 if the attempt or question is missing, 403 if the
            attempt belongs to someone else, 400 if the attempt is finished
            or the answer does not fit the question type
    """
    attempt, test = await get_owned_attempt(db, attempt_id, current_user.id)

    await expire_if_elapsed(db, lifecycle, attempt, test)
    if attempt.status in TERMINAL_ATTEMPT_STATUSES:
        raise_bad_request(ErrorMessages.ATTEMPT_NOT_MODIFIABLE)

    question = (
        await db.execute(
            select(Question).where(
                Question.id == request.question_id,
                Question.test_id == attempt.test_id,
            )
        )
    ).scalar_one_or_none()
    if question is None:
        raise_not_found(ErrorMessages.QUESTION_NOT_FOUND)

    question_type = question.question_type.value
    reason = validate_answer_for_question_type(
        question_type, request.answer, request.answer_data, question.options
    )
    if reason:
        raise_bad_request(ErrorMessages.invalid_answer(reason))

    scored = calculate_answer_score(
        question_type,
        request.answer,
        request.answer_data,
        question.correct_answer,
        question.options,
    )

    async with async_handle_db_error(db, "submit answer"):
        answer = (
            await db.execute(
                select(Answer).where(
                    Answer.attempt_id == attempt.id,
                    Answer.question_id == question.id,
                )
            )
        ).scalar_one_or_none()
        is_update = answer is not None
        if answer is None:
            answer = Answer(attempt_id=attempt.id, question_id=question.id)
            db.add(answer)

        answer.answer = request.answer
        answer.answer_data = request.answer_data
        answer.time_taken = request.time_taken
        answer.score = scored.score
        answer.is_correct = scored.is_correct
        answer.answered_at = lifecycle.now()
        await db.flush()

        answered_count = (
            await db.execute(
                select(func.count(Answer.id)).where(Answer.attempt_id == attempt.id)
            )
        ).scalar_one()
        try:
            lifecycle.record_answer(attempt, answered_count)
        except AttemptTransitionError:
            raise_bad_request(ErrorMessages.ATTEMPT_NOT_MODIFIABLE)
        attempt.updated_at = lifecycle.now()

        await db.commit()
        await db.refresh(answer)

        AnalyticsTracker.track_answer_submitted(
            user_id=current_user.id,
            attempt_id=attempt.id,
            question_id=question.id,
            is_update=is_update,
        )
        return SubmitAnswerResponse(
            answer=AnswerResponse.model_validate(answer),
            is_update=is_update,
            progress=build_progress_response(lifecycle, attempt, test),
        )


@router.get("/{attempt_id}/progress", response_model=AttemptProgressResponse)
async def get_attempt_progress(
    attempt_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    lifecycle: AttemptLifecycleManager = Depends(get_lifecycle_manager),
):
    """Report progress and remaining time for an attempt."""
    attempt, test = await get_owned_attempt(db, attempt_id, current_user.id)
    await expire_if_elapsed(db, lifecycle, attempt, test)
    return build_progress_response(lifecycle, attempt, test)


async def _next_session_test(
    db: AsyncSession, attempt: Attempt
) -> Optional[NextTestInfo]:
    if attempt.session_id is None:
        return None

    current_sequence = (
        await db.execute(
            select(SessionModule.sequence).where(
                SessionModule.session_id == attempt.session_id,
                SessionModule.test_id == attempt.test_id,
            )
        )
    ).scalar_one_or_none()
    if current_sequence is None:
        return None

    row = (
        await db.execute(
            select(SessionModule.sequence, Test.id, Test.name)
            .join(Test, SessionModule.test_id == Test.id)
            .where(
                SessionModule.session_id == attempt.session_id,
                SessionModule.sequence > current_sequence,
            )
            .order_by(SessionModule.sequence)
            .limit(1)
        )
    ).first()
    if row is None:
        return None
    return NextTestInfo(test_id=row.id, name=row.name, sequence=row.sequence)


@router.post("/{attempt_id}/finish", response_model=FinishAttemptResponse)
async def finish_attempt(
    attempt_id: int,
    request: FinishAttemptRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    lifecycle: AttemptLifecycleManager = Depends(get_lifecycle_manager),
):
    """
    Finish an attempt as completed or abandoned.

    A completion requested after the time limit is recorded as expired.
    Completed attempts are scored synchronously. Repeating a finish that
    resolves to the stored status is a no-op.

    Raises:
        HTTPException: 404/403 as for other attempt endpoints, 409 if the
            attempt already finished with a different status
    """
    attempt, test = await get_owned_attempt(db, attempt_id, current_user.id)

    try:
        decision = lifecycle.finish(attempt, test, AttemptStatus(request.completion_type))
    except AttemptTransitionError as e:
        raise_conflict(ErrorMessages.attempt_already_finished(e.current_status))

    if not decision.already_finished:
        async with async_handle_db_error(db, "finish test attempt"):
            await db.commit()
        logger.info(
            f"Attempt {attempt.id} finished as {decision.status.value}",
            extra={"attempt_id": attempt.id, "user_id": current_user.id},
        )
        AnalyticsTracker.track_attempt_finished(
            user_id=current_user.id,
            attempt_id=attempt.id,
            status=decision.status.value,
            time_spent_seconds=attempt.time_spent,
            questions_answered=attempt.questions_answered or 0,
        )

    result = None
    if decision.status == AttemptStatus.COMPLETED:
        try:
            result, _ = await calculate_result(db, attempt_id=attempt.id)
        except ResultConflictError:
            await db.refresh(attempt)
            result = (
                await db.execute(
                    select(TestResult).where(TestResult.attempt_id == attempt.id)
                )
            ).scalar_one()
        except ScoringError as e:
            logger.error(
                f"Scoring failed for attempt {attempt.id}: {e}",
                extra={"attempt_id": attempt.id},
            )
            raise_for_scoring_error(e)

    return FinishAttemptResponse(
        attempt=AttemptResponse.model_validate(attempt),
        already_finished=decision.already_finished,
        result=TestResultResponse.model_validate(result) if result else None,
        next_test=await _next_session_test(db, attempt),
    )
