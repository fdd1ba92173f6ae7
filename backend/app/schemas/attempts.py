"""
Pydantic schemas for test attempt endpoints.
"""
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

from app.models.models import AttemptStatus
from app.schemas.results import TestResultResponse


class StartAttemptRequest(BaseModel):
    """Schema for starting (or resuming) an attempt at a test."""

    test_id: int = Field(..., gt=0, description="Test to take")
    session_code: Optional[str] = Field(
        None,
        min_length=1,
        max_length=50,
        description="Assessment session code, when the test is taken within a session",
    )


class AttemptResponse(BaseModel):
    """Schema for a test attempt."""

    id: int = Field(..., description="Attempt ID")
    user_id: int = Field(..., description="Participant ID")
    test_id: int = Field(..., description="Test ID")
    session_id: Optional[int] = Field(None, description="Assessment session ID")
    attempt_number: int = Field(..., description="1-based attempt number for this test")
    status: AttemptStatus = Field(..., description="Attempt status")
    start_time: datetime = Field(..., description="Start timestamp")
    end_time: Optional[datetime] = Field(None, description="Scheduled end timestamp")
    actual_end_time: Optional[datetime] = Field(
        None, description="Timestamp the attempt was finished"
    )
    time_spent: Optional[int] = Field(None, description="Seconds spent, once finished")
    questions_answered: int = Field(..., description="Questions answered so far")
    total_questions: Optional[int] = Field(
        None, description="Question count snapshot taken at start"
    )

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class AttemptProgressResponse(BaseModel):
    """Schema for attempt progress and timing."""

    attempt_id: int = Field(..., description="Attempt ID")
    status: AttemptStatus = Field(..., description="Attempt status")
    questions_answered: int = Field(..., description="Questions answered so far")
    total_questions: Optional[int] = Field(None, description="Total questions")
    progress_percentage: int = Field(..., ge=0, le=100, description="Percent answered")
    time_remaining_seconds: int = Field(..., ge=0, description="Seconds remaining")
    is_nearly_expired: bool = Field(
        ..., description="Whether the remaining time is inside the warning window"
    )
    is_expired: bool = Field(..., description="Whether the time limit has passed")
    can_continue: bool = Field(..., description="Whether answers are still accepted")
    estimated_completion_minutes: Optional[int] = Field(
        None, description="Minutes still needed at the current pace"
    )
    time_efficiency: int = Field(
        ..., ge=0, le=100, description="Percent of the time limit left unused"
    )


class StartAttemptResponse(BaseModel):
    """Schema for the start-attempt response."""

    attempt: AttemptResponse = Field(..., description="Started or resumed attempt")
    resumed: bool = Field(..., description="True if an existing live attempt was returned")
    progress: AttemptProgressResponse = Field(..., description="Progress and timing")


class SubmitAnswerRequest(BaseModel):
    """Schema for saving an answer to one question."""

    question_id: int = Field(..., gt=0, description="Question being answered")
    answer: Optional[str] = Field(None, max_length=10000, description="Answer text")
    answer_data: Optional[Dict[str, Any]] = Field(
        None, description="Structured answer payload (ratings, drawings, sequences)"
    )
    time_taken: Optional[int] = Field(
        None, ge=0, description="Seconds spent on the question"
    )


class AnswerResponse(BaseModel):
    """Schema for a stored answer."""

    id: int = Field(..., description="Answer ID")
    question_id: int = Field(..., description="Question ID")
    answer: Optional[str] = Field(None, description="Answer text")
    answer_data: Optional[Dict[str, Any]] = Field(None, description="Structured payload")
    is_correct: Optional[bool] = Field(None, description="Correctness flag")
    score: Optional[float] = Field(None, description="Answer score")
    time_taken: Optional[int] = Field(None, description="Seconds spent on the question")
    answered_at: datetime = Field(..., description="Last save timestamp")

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class SubmitAnswerResponse(BaseModel):
    """Schema for the submit-answer response."""

    answer: AnswerResponse = Field(..., description="Saved answer")
    is_update: bool = Field(..., description="True if an earlier answer was replaced")
    progress: AttemptProgressResponse = Field(..., description="Updated progress")


class FinishAttemptRequest(BaseModel):
    """Schema for finishing an attempt."""

    completion_type: Literal["completed", "abandoned"] = Field(
        "completed", description="How the participant ended the attempt"
    )


class NextTestInfo(BaseModel):
    """Next test in the attempt's assessment session."""

    test_id: int = Field(..., description="Test ID")
    name: str = Field(..., description="Test name")
    sequence: int = Field(..., description="Position in the session")


class FinishAttemptResponse(BaseModel):
    """Schema for the finish-attempt response."""

    attempt: AttemptResponse = Field(..., description="Finished attempt")
    already_finished: bool = Field(
        ..., description="True if the attempt was already in the requested state"
    )
    result: Optional[TestResultResponse] = Field(
        None, description="Calculated result, for completed attempts"
    )
    next_test: Optional[NextTestInfo] = Field(
        None, description="Next test in the session, if any"
    )
