"""
Database models for the psychometric test-delivery platform.

Attempts and their derived results are the only rows mutated by the
scoring core; everything else is reference data maintained elsewhere.
"""
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import enum

from .base import Base
from .types import TraitMeasurementList


class Gender(str, enum.Enum):
    """Participant gender enumeration."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class EducationLevel(str, enum.Enum):
    """Highest completed education level."""

    SD = "sd"
    SMP = "smp"
    SMA = "sma"
    DIPLOMA = "diploma"
    S1 = "s1"
    S2 = "s2"
    S3 = "s3"
    OTHER = "other"


class ModuleType(str, enum.Enum):
    """Psychometric module families."""

    INTELLIGENCE = "intelligence"
    PERSONALITY = "personality"
    APTITUDE = "aptitude"
    INTEREST = "interest"
    PROJECTIVE = "projective"
    COGNITIVE = "cognitive"


class TestCategory(str, enum.Enum):
    """Instrument a test is built on."""

    WAIS = "wais"
    MBTI = "mbti"
    WARTEGG = "wartegg"
    RIASEC = "riasec"
    KRAEPELIN = "kraepelin"
    PAULI = "pauli"
    BIG_FIVE = "big_five"
    PAPI_KOSTICK = "papi_kostick"
    DAP = "dap"
    RAVEN = "raven"
    EPPS = "epps"
    ARMY_ALPHA = "army_alpha"
    HTP = "htp"
    DISC = "disc"
    IQ = "iq"
    EQ = "eq"


class QuestionType(str, enum.Enum):
    """Question type enumeration."""

    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    TEXT = "text"
    RATING_SCALE = "rating_scale"
    DRAWING = "drawing"
    SEQUENCE = "sequence"
    MATRIX = "matrix"


class TestStatus(str, enum.Enum):
    """Availability of a test definition."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


class SessionStatus(str, enum.Enum):
    """Assessment session status enumeration."""

    DRAFT = "draft"
    ACTIVE = "active"
    EXPIRED = "expired"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AttemptStatus(str, enum.Enum):
    """Attempt lifecycle states."""

    STARTED = "started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    EXPIRED = "expired"


TERMINAL_ATTEMPT_STATUSES = frozenset(
    {AttemptStatus.COMPLETED, AttemptStatus.ABANDONED, AttemptStatus.EXPIRED}
)
LIVE_ATTEMPT_STATUSES = frozenset({AttemptStatus.STARTED, AttemptStatus.IN_PROGRESS})


class User(Base):
    """Participant account with the demographics used by trait analytics."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    gender = Column(Enum(Gender), nullable=True)
    education = Column(Enum(EducationLevel), nullable=True)
    birth_date = Column(Date, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    attempts = relationship(
        "Attempt", back_populates="user", cascade="all, delete-orphan"
    )


class Test(Base):
    """Test definition (one psychometric module)."""

    __tablename__ = "tests"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    module_type = Column(Enum(ModuleType), nullable=False, index=True)
    category = Column(Enum(TestCategory), nullable=False, index=True)
    question_type = Column(
        Enum(QuestionType), default=QuestionType.MULTIPLE_CHOICE, nullable=True
    )
    time_limit = Column(Integer, nullable=False)  # minutes
    total_questions = Column(Integer, default=0, nullable=False)
    passing_score = Column(Numeric(5, 2), nullable=True)
    status = Column(Enum(TestStatus), default=TestStatus.ACTIVE, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    questions = relationship(
        "Question", back_populates="test", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("time_limit >= 0", name="ck_tests_time_limit_non_negative"),
        CheckConstraint(
            "total_questions >= 0", name="ck_tests_total_questions_non_negative"
        ),
    )


class Question(Base):
    """Question belonging to a test."""

    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    test_id = Column(
        Integer, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sequence = Column(Integer, nullable=False)
    question_text = Column(Text, nullable=False)
    question_type = Column(Enum(QuestionType), nullable=False)
    options = Column(JSON, nullable=True)  # [{"value", "label", "score"?}]
    correct_answer = Column(Text, nullable=True)
    scoring_key = Column(JSON, nullable=True)  # e.g. {"trait": "openness"}

    test = relationship("Test", back_populates="questions")

    __table_args__ = (
        UniqueConstraint("test_id", "sequence", name="uq_questions_test_sequence"),
    )


class AssessmentSession(Base):
    """Proctored session grouping several tests under one access code."""

    __tablename__ = "assessment_sessions"

    id = Column(Integer, primary_key=True, index=True)
    session_code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(Enum(SessionStatus), default=SessionStatus.DRAFT, nullable=False)

    modules = relationship(
        "SessionModule",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="SessionModule.sequence",
    )


class SessionModule(Base):
    """Ordered membership of a test in an assessment session."""

    __tablename__ = "session_modules"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(
        Integer,
        ForeignKey("assessment_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    test_id = Column(
        Integer, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False
    )
    sequence = Column(Integer, nullable=False)

    session = relationship("AssessmentSession", back_populates="modules")

    __table_args__ = (
        UniqueConstraint("session_id", "sequence", name="uq_session_modules_sequence"),
        UniqueConstraint("session_id", "test_id", name="uq_session_modules_test"),
    )


class Attempt(Base):
    """One participant's run of one test."""

    __tablename__ = "attempts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    test_id = Column(
        Integer, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    session_id = Column(
        Integer,
        ForeignKey("assessment_sessions.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    attempt_number = Column(Integer, nullable=False, default=1)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    actual_end_time = Column(DateTime(timezone=True), nullable=True)
    status = Column(
        Enum(AttemptStatus),
        default=AttemptStatus.STARTED,
        nullable=False,
        index=True,
    )
    time_spent = Column(Integer, nullable=True)  # seconds
    questions_answered = Column(Integer, default=0, nullable=False)
    total_questions = Column(Integer, nullable=True)  # snapshot at start
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    user = relationship("User", back_populates="attempts")
    answers = relationship(
        "Answer", back_populates="attempt", cascade="all, delete-orphan"
    )

    __table_args__ = (
        # Closes the check-then-act race on attempt numbering
        UniqueConstraint(
            "user_id", "test_id", "attempt_number", name="uq_attempts_user_test_number"
        ),
        Index("ix_attempts_user_test_status", "user_id", "test_id", "status"),
        CheckConstraint(
            "questions_answered >= 0", name="ck_attempts_answered_non_negative"
        ),
    )


class Answer(Base):
    """A participant response to one question within an attempt."""

    __tablename__ = "answers"

    id = Column(Integer, primary_key=True, index=True)
    attempt_id = Column(
        Integer,
        ForeignKey("attempts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id = Column(
        Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    answer = Column(Text, nullable=True)
    answer_data = Column(JSON, nullable=True)
    is_correct = Column(Boolean, nullable=True)
    score = Column(Numeric(5, 2), nullable=True)
    time_taken = Column(Integer, nullable=True)  # seconds
    answered_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    attempt = relationship("Attempt", back_populates="answers")

    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_answers_attempt_question"),
    )


class TestResult(Base):
    """Derived scoring artifact for exactly one completed attempt."""

    __tablename__ = "test_results"

    id = Column(Integer, primary_key=True, index=True)
    attempt_id = Column(
        Integer,
        ForeignKey("attempts.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    test_id = Column(
        Integer, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    raw_score = Column(Numeric(8, 2), nullable=False)
    scaled_score = Column(Numeric(8, 2), nullable=False)
    percentile = Column(Numeric(5, 2), nullable=False)
    grade = Column(String(10), nullable=False)
    is_passed = Column(Boolean, nullable=False)
    completion_percentage = Column(Numeric(5, 2), nullable=False)
    traits = Column(TraitMeasurementList(none_as_null=True), nullable=True)
    trait_names = Column(JSON, nullable=True)
    description = Column(Text, nullable=True)
    recommendations = Column(Text, nullable=True)
    detailed_analysis = Column(JSON, nullable=True)
    calculated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_test_results_user_test", "user_id", "test_id"),
        CheckConstraint(
            "percentile >= 0 AND percentile <= 100",
            name="ck_test_results_percentile_range",
        ),
    )
