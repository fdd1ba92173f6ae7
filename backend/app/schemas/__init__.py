"""
Pydantic schemas for request/response validation.
"""
from .traits import TraitMeasurement
from .results import (
    CalculateResultRequest,
    CalculateResultResponse,
    ResultReportResponse,
    TestResultResponse,
)
from .attempts import (
    AttemptProgressResponse,
    AttemptResponse,
    FinishAttemptRequest,
    FinishAttemptResponse,
    StartAttemptRequest,
    StartAttemptResponse,
    SubmitAnswerRequest,
    SubmitAnswerResponse,
)

__all__ = [
    "TraitMeasurement",
    "CalculateResultRequest",
    "CalculateResultResponse",
    "ResultReportResponse",
    "TestResultResponse",
    "AttemptProgressResponse",
    "AttemptResponse",
    "FinishAttemptRequest",
    "FinishAttemptResponse",
    "StartAttemptRequest",
    "StartAttemptResponse",
    "SubmitAnswerRequest",
    "SubmitAnswerResponse",
]
