"""
Participant endpoints for reading calculated results and reports.
"""
import logging
from typing import Tuple

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.datetime_utils import utc_now
from app.core.error_responses import (
    ErrorMessages,
    raise_forbidden,
    raise_not_found,
    raise_server_error,
)
from app.core.report_content import build_report_content
from app.models import Attempt, Test, TestResult, User, get_db
from app.schemas.results import (
    ReportContentResponse,
    ResultReportResponse,
    TestResultResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)


async def get_owned_result(
    db: AsyncSession, result_id: int, user_id: int
) -> TestResult:
    result = await db.get(TestResult, result_id)
    if result is None:
        raise_not_found(ErrorMessages.RESULT_NOT_FOUND)
    if result.user_id != user_id:
        raise_forbidden(ErrorMessages.RESULT_ACCESS_DENIED)
    return result


async def _load_report_context(
    db: AsyncSession, result: TestResult
) -> Tuple[Test, Attempt]:
    row = (
        await db.execute(
            select(Test, Attempt)
            .join(Attempt, Attempt.test_id == Test.id)
            .where(Attempt.id == result.attempt_id)
        )
    ).first()
    if row is None:
        logger.error(
            f"Result {result.id} references a missing attempt or test",
            extra={"result_id": result.id},
        )
        raise_server_error(ErrorMessages.DATA_INTEGRITY_ERROR)
    return row[0], row[1]


@router.get("/{result_id}", response_model=TestResultResponse)
async def get_result(
    result_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Get one of the current participant's results.

    Raises:
        HTTPException: 404 if the result does not exist, 403 if it belongs
            to another participant
    """
    return await get_owned_result(db, result_id, current_user.id)


@router.get("/{result_id}/report", response_model=ResultReportResponse)
async def get_result_report(
    result_id: int,
    include_detailed_analysis: bool = Query(
        True, description="Include the detailed analysis section"
    ),
    include_recommendations: bool = Query(
        True, description="Include recommendation lines"
    ),
    include_trait_explanations: bool = Query(
        True, description="Include per-trait explanations"
    ),
    include_charts: bool = Query(True, description="Include chart series"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Build a plain-text report for one of the current participant's results.

    Each section can be switched off with its query toggle.
    """
    result = await get_owned_result(db, result_id, current_user.id)
    test, attempt = await _load_report_context(db, result)

    content = build_report_content(
        result,
        current_user,
        test,
        attempt,
        include_detailed_analysis=include_detailed_analysis,
        include_recommendations=include_recommendations,
        include_trait_explanations=include_trait_explanations,
        include_charts=include_charts,
    )
    return ResultReportResponse(
        result=TestResultResponse.model_validate(result),
        content=ReportContentResponse.model_validate(content),
        generated_at=utc_now(),
    )
