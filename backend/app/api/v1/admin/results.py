"""
Result calculation admin endpoints.

Endpoints for (re)calculating test results and re-scoring stored answers.
"""
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.error_responses import (
    ErrorMessages,
    raise_bad_request,
    raise_for_scoring_error,
)
from app.core.scoring import (
    CalculationOptions,
    ScoringError,
    calculate_result,
    rescore_answers,
)
from app.models import get_db
from app.schemas.results import (
    AnswerRescoreUpdate,
    CalculateResultRequest,
    CalculateResultResponse,
    CalculationMetadataResponse,
    RescoreAnswersResponse,
    TestResultResponse,
)

from ._dependencies import logger, verify_admin_token

router = APIRouter()


@router.post(
    "/results/calculate",
    response_model=CalculateResultResponse,
    status_code=status.HTTP_201_CREATED,
)
async def calculate_test_result(
    request: CalculateResultRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(verify_admin_token),
):
    """
    Calculate the result of a completed attempt.

    Requires X-Admin-Token header with valid admin token.

    Returns 201 when a new result is created and 200 when an existing one is
    recalculated. An existing result is only overwritten when
    ``force_recalculate`` is set; this also applies when the attempt is
    identified through ``result_id``.

    Raises:
        HTTPException: 400 if neither ID is given or the attempt is not
            completed, 404 if the attempt or result does not exist, 409 if a
            result exists and force_recalculate is false
    """
    if request.attempt_id is None and request.result_id is None:
        raise_bad_request(ErrorMessages.ATTEMPT_OR_RESULT_REQUIRED)

    options = CalculationOptions(**request.calculation_options.model_dump())
    try:
        result, metadata = await calculate_result(
            db,
            attempt_id=request.attempt_id,
            result_id=request.result_id,
            force_recalculate=request.force_recalculate,
            options=options,
        )
    except ScoringError as e:
        logger.warning(f"Result calculation rejected: {e}")
        raise_for_scoring_error(e)

    if metadata.recalculated:
        response.status_code = status.HTTP_200_OK

    return CalculateResultResponse(
        message=(
            "Result recalculated successfully"
            if metadata.recalculated
            else "Result calculated successfully"
        ),
        result=TestResultResponse.model_validate(result),
        metadata=CalculationMetadataResponse(
            processing_time_ms=metadata.processing_time_ms,
            recalculated=metadata.recalculated,
            calculated_at=metadata.calculated_at,
        ),
    )


@router.post(
    "/attempts/{attempt_id}/rescore-answers",
    response_model=RescoreAnswersResponse,
)
async def rescore_attempt_answers(
    attempt_id: int,
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(verify_admin_token),
):
    """
    Recompute the stored score of every answer in an attempt.

    Use after correcting a question's answer key. Answers whose score does
    not change are left untouched. The attempt's result is not recalculated;
    call ``/results/calculate`` with ``force_recalculate`` afterwards.

    Requires X-Admin-Token header with valid admin token.
    """
    try:
        summary = await rescore_answers(db, attempt_id)
    except ScoringError as e:
        raise_for_scoring_error(e)

    return RescoreAnswersResponse(
        attempt_id=summary.attempt_id,
        total_answers=summary.total_answers,
        updated_count=summary.updated_count,
        skipped_count=summary.skipped_count,
        updates=[AnswerRescoreUpdate(**update) for update in summary.updates],
    )
