"""
Loading, scoring and persisting test results.

The engine itself is pure; this module does the database work around it:
it loads the attempt with its test, participant and answers, enforces the
calculation preconditions and writes the result row.

Result uniqueness is guaranteed by the unique index on
``test_results.attempt_id``. A first calculation is a plain INSERT, so two
concurrent first calculations cannot both succeed; a forced recalculation
is a dialect-aware ``INSERT ... ON CONFLICT (attempt_id) DO UPDATE``.
"""
import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.analytics import AnalyticsTracker
from app.core.datetime_utils import utc_now
from app.core.math_utils import to_decimal
from app.models import Answer, Attempt, AttemptStatus, Question, Test, TestResult, User
from app.schemas.traits import dump_trait_measurements

from ._types import (
    AttemptFacts,
    CalculationMetadata,
    CalculationOptions,
    ScoredAnswer,
    ScoreOutcome,
)
from .answer_scoring import calculate_answer_score
from .engine import ScoringEngine
from .exceptions import (
    DataIntegrityError,
    ResultConflictError,
    ScoringNotFoundError,
    ScoringPreconditionError,
)

logger = logging.getLogger(__name__)


def _value(member: Any) -> Any:
    return getattr(member, "value", member)


def _insert_for(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise NotImplementedError(f"Result upsert is not supported on dialect {dialect!r}")


async def _load_attempt_context(
    db: AsyncSession, attempt_id: int
) -> Tuple[Attempt, Test, User]:
    row = (
        await db.execute(
            select(Attempt, Test, User)
            .outerjoin(Test, Attempt.test_id == Test.id)
            .outerjoin(User, Attempt.user_id == User.id)
            .where(Attempt.id == attempt_id)
        )
    ).first()
    if row is None:
        raise ScoringNotFoundError("Attempt", attempt_id)

    attempt, test, user = row
    if test is None or user is None:
        logger.error(
            f"Attempt {attempt_id} references a missing "
            f"{'test' if test is None else 'user'}",
            extra={"attempt_id": attempt_id},
        )
        raise DataIntegrityError(f"Attempt {attempt_id} is missing its test or user")
    return attempt, test, user


async def load_scored_answers(db: AsyncSession, attempt_id: int) -> List[ScoredAnswer]:
    """Load an attempt's answers joined with their questions, in question order."""
    rows = (
        await db.execute(
            select(Answer, Question)
            .join(Question, Answer.question_id == Question.id)
            .where(Answer.attempt_id == attempt_id)
            .order_by(Question.sequence, Answer.id)
        )
    ).all()
    return [
        ScoredAnswer(
            question_id=question.id,
            question_type=_value(question.question_type),
            scoring_key=question.scoring_key,
            answer=answer.answer,
            answer_data=answer.answer_data,
            is_correct=answer.is_correct,
            score=answer.score,
        )
        for answer, question in rows
    ]


def build_attempt_facts(attempt: Attempt, test: Test) -> AttemptFacts:
    total = attempt.total_questions
    if total is None:
        total = test.total_questions or 0
    return AttemptFacts(
        total_questions=total,
        questions_answered=attempt.questions_answered or 0,
        time_spent_seconds=attempt.time_spent,
        time_limit_minutes=test.time_limit or 0,
        passing_score=test.passing_score,
        module_type=_value(test.module_type),
        category=_value(test.category),
    )


def _result_values(
    attempt: Attempt, outcome: ScoreOutcome, now: Any
) -> Dict[str, Any]:
    return {
        "attempt_id": attempt.id,
        "user_id": attempt.user_id,
        "test_id": attempt.test_id,
        "raw_score": outcome.raw_score,
        "scaled_score": outcome.scaled_score,
        "percentile": outcome.percentile,
        "grade": outcome.grade,
        "is_passed": outcome.is_passed,
        "completion_percentage": outcome.completion_percentage,
        "traits": (
            dump_trait_measurements(outcome.traits) if outcome.traits is not None else None
        ),
        "trait_names": outcome.trait_names,
        "description": outcome.description,
        "recommendations": outcome.recommendations,
        "detailed_analysis": outcome.detailed_analysis,
        "calculated_at": now,
        "updated_at": now,
    }


async def _insert_result(db: AsyncSession, values: Dict[str, Any]) -> TestResult:
    result = TestResult(created_at=values["calculated_at"], **values)
    db.add(result)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning(
            f"Result for attempt {values['attempt_id']} was created concurrently",
            extra={"attempt_id": values["attempt_id"]},
        )
        raise ResultConflictError(values["attempt_id"])
    await db.refresh(result)
    return result


async def _upsert_result(db: AsyncSession, values: Dict[str, Any]) -> TestResult:
    insert = _insert_for(db)
    stmt = insert(TestResult).values(created_at=values["calculated_at"], **values)
    updatable = [name for name in values if name != "attempt_id"]
    stmt = stmt.on_conflict_do_update(
        index_elements=[TestResult.attempt_id],
        set_={name: stmt.excluded[name] for name in updatable},
    )
    await db.execute(stmt)
    await db.commit()

    return (
        await db.execute(
            select(TestResult)
            .where(TestResult.attempt_id == values["attempt_id"])
            .execution_options(populate_existing=True)
        )
    ).scalar_one()


async def calculate_result(
    db: AsyncSession,
    *,
    attempt_id: Optional[int] = None,
    result_id: Optional[int] = None,
    force_recalculate: bool = False,
    options: Optional[CalculationOptions] = None,
    engine: Optional[ScoringEngine] = None,
) -> Tuple[TestResult, CalculationMetadata]:
    """
    Calculate and persist the result of a completed attempt.

    Either ``attempt_id`` or ``result_id`` identifies the attempt; a result
    ID resolves to the attempt it was calculated from.

    Args:
        db: Async database session
        attempt_id: Attempt to score
        result_id: Existing result whose attempt should be scored
        force_recalculate: Overwrite an existing result
        options: Optional calculation toggles
        engine: Engine to score with (defaults to the registry-backed engine)

    Returns:
        Tuple of (persisted TestResult, CalculationMetadata)

    Raises:
        ScoringNotFoundError: The attempt or result does not exist
        ScoringPreconditionError: The attempt is not completed
        ResultConflictError: A result exists and force_recalculate is False
        DataIntegrityError: The attempt's test or participant is missing
    """
    started = time.perf_counter()

    if attempt_id is None:
        if result_id is None:
            raise ValueError("attempt_id or result_id is required")
        attempt_id = (
            await db.execute(
                select(TestResult.attempt_id).where(TestResult.id == result_id)
            )
        ).scalar_one_or_none()
        if attempt_id is None:
            raise ScoringNotFoundError("Result", result_id)

    attempt, test, user = await _load_attempt_context(db, attempt_id)

    if attempt.status != AttemptStatus.COMPLETED:
        raise ScoringPreconditionError(attempt.id, _value(attempt.status))

    existing_id = (
        await db.execute(
            select(TestResult.id).where(TestResult.attempt_id == attempt.id)
        )
    ).scalar_one_or_none()
    if existing_id is not None and not force_recalculate:
        raise ResultConflictError(attempt.id)

    answers = await load_scored_answers(db, attempt.id)
    outcome = (engine or ScoringEngine()).score(
        build_attempt_facts(attempt, test), answers, options
    )

    now = utc_now()
    values = _result_values(attempt, outcome, now)
    if force_recalculate:
        result = await _upsert_result(db, values)
    else:
        result = await _insert_result(db, values)

    recalculated = existing_id is not None
    metadata = CalculationMetadata(
        processing_time_ms=int((time.perf_counter() - started) * 1000),
        recalculated=recalculated,
        calculated_at=now,
    )

    logger.info(
        f"{'Recalculated' if recalculated else 'Calculated'} result {result.id} "
        f"for attempt {attempt.id}: scaled={outcome.scaled_score} grade={outcome.grade}",
        extra={"attempt_id": attempt.id, "result_id": result.id, "user_id": user.id},
    )
    AnalyticsTracker.track_result_calculated(
        user_id=user.id,
        attempt_id=attempt.id,
        result_id=result.id,
        scaled_score=float(outcome.scaled_score),
        grade=outcome.grade,
        recalculated=recalculated,
    )
    return result, metadata


@dataclass
class RescoreSummary:
    """Outcome of recomputing stored answer scores for one attempt."""

    attempt_id: int
    total_answers: int
    updated_count: int
    skipped_count: int
    updates: List[Dict[str, Any]] = field(default_factory=list)


async def rescore_answers(db: AsyncSession, attempt_id: int) -> RescoreSummary:
    """
    Recompute ``score`` and ``is_correct`` for every stored answer of an attempt.

    Answers with no content, or whose question no longer exists, are left
    untouched. Only answers whose values change are written.
    """
    attempt = await db.get(Attempt, attempt_id)
    if attempt is None:
        raise ScoringNotFoundError("Attempt", attempt_id)

    rows = (
        await db.execute(
            select(Answer, Question)
            .outerjoin(Question, Answer.question_id == Question.id)
            .where(Answer.attempt_id == attempt_id)
        )
    ).all()

    updates: List[Dict[str, Any]] = []
    for answer, question in rows:
        if question is None:
            logger.warning(
                f"Skipping answer {answer.id}: question {answer.question_id} is missing",
                extra={"attempt_id": attempt_id},
            )
            continue
        if not answer.answer and not answer.answer_data and answer.score is None:
            continue

        scored = calculate_answer_score(
            _value(question.question_type),
            answer.answer,
            answer.answer_data,
            question.correct_answer,
            question.options,
        )
        old_score: Optional[Decimal] = (
            to_decimal(answer.score) if answer.score is not None else None
        )
        if old_score == scored.score and answer.is_correct == scored.is_correct:
            continue

        updates.append(
            {
                "question_id": question.id,
                "old_score": float(old_score) if old_score is not None else None,
                "new_score": float(scored.score),
                "old_is_correct": answer.is_correct,
                "new_is_correct": scored.is_correct,
            }
        )
        answer.score = scored.score
        answer.is_correct = scored.is_correct

    attempt.updated_at = utc_now()
    await db.commit()

    summary = RescoreSummary(
        attempt_id=attempt_id,
        total_answers=len(rows),
        updated_count=len(updates),
        skipped_count=len(rows) - len(updates),
        updates=updates,
    )
    logger.info(
        f"Rescored {summary.updated_count} of {summary.total_answers} answers "
        f"for attempt {attempt_id}",
        extra={"attempt_id": attempt_id},
    )
    AnalyticsTracker.track_answers_rescored(
        attempt_id, summary.total_answers, summary.updated_count
    )
    return summary
