"""
Models package for the assessment backend.
"""
from .base import Base, engine, SessionLocal, AsyncSessionLocal, get_db
from .models import (
    User,
    Test,
    Question,
    AssessmentSession,
    SessionModule,
    Attempt,
    Answer,
    TestResult,
    AttemptStatus,
    ModuleType,
    TestCategory,
    QuestionType,
    TestStatus,
    SessionStatus,
    Gender,
    EducationLevel,
)

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "AsyncSessionLocal",
    "get_db",
    "User",
    "Test",
    "Question",
    "AssessmentSession",
    "SessionModule",
    "Attempt",
    "Answer",
    "TestResult",
    "AttemptStatus",
    "ModuleType",
    "TestCategory",
    "QuestionType",
    "TestStatus",
    "SessionStatus",
    "Gender",
    "EducationLevel",
]
