"""
Event tracking for attempt, answer and result activity.

Events are emitted as structured log records so they can be shipped to an
external analytics platform by the log pipeline.
"""
import logging
from enum import Enum
from typing import Any, Dict, Optional

from app.core.config import settings
from app.core.datetime_utils import utc_now

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Analytics event types."""

    # Attempt events
    ATTEMPT_STARTED = "attempt.started"
    ATTEMPT_RESUMED = "attempt.resumed"
    ATTEMPT_FINISHED = "attempt.finished"
    ATTEMPT_EXPIRED = "attempt.expired"

    # Answer events
    ANSWER_SUBMITTED = "answer.submitted"
    ANSWERS_RESCORED = "answer.rescored"

    # Result events
    RESULT_CALCULATED = "result.calculated"
    RESULT_RECALCULATED = "result.recalculated"

    # Admin analytics
    TRAIT_ANALYTICS_GENERATED = "analytics.traits_generated"

    # System events
    API_ERROR = "api.error"


class AnalyticsTracker:
    """
    Analytics event tracker for logging and monitoring participant activity.
    """

    @staticmethod
    def track_event(
        event_type: EventType,
        user_id: Optional[int] = None,
        properties: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Track an analytics event.

        Args:
            event_type: Type of event being tracked
            user_id: Optional user ID associated with the event
            properties: Optional dictionary of event properties

        Example:
            AnalyticsTracker.track_event(
                EventType.ATTEMPT_FINISHED,
                user_id=123,
                properties={"attempt_id": 7, "status": "completed"}
            )
        """
        event_data = {
            "event": event_type.value,
            "timestamp": utc_now().isoformat(),
            "user_id": user_id,
            "properties": properties or {},
            "environment": settings.ENV,
        }

        logger.info(
            f"Analytics Event: {event_type.value}",
            extra={
                "event_data": event_data,
                "user_id": user_id,
            },
        )

    @staticmethod
    def track_attempt_started(
        user_id: int, attempt_id: int, test_id: int, attempt_number: int
    ) -> None:
        """Track a new attempt."""
        AnalyticsTracker.track_event(
            EventType.ATTEMPT_STARTED,
            user_id=user_id,
            properties={
                "attempt_id": attempt_id,
                "test_id": test_id,
                "attempt_number": attempt_number,
            },
        )

    @staticmethod
    def track_attempt_resumed(user_id: int, attempt_id: int) -> None:
        """Track a participant returning to a live attempt."""
        AnalyticsTracker.track_event(
            EventType.ATTEMPT_RESUMED,
            user_id=user_id,
            properties={"attempt_id": attempt_id},
        )

    @staticmethod
    def track_attempt_finished(
        user_id: int,
        attempt_id: int,
        status: str,
        time_spent_seconds: Optional[int] = None,
        questions_answered: int = 0,
    ) -> None:
        """Track a terminal transition requested by the participant."""
        AnalyticsTracker.track_event(
            EventType.ATTEMPT_FINISHED,
            user_id=user_id,
            properties={
                "attempt_id": attempt_id,
                "status": status,
                "time_spent_seconds": time_spent_seconds,
                "questions_answered": questions_answered,
            },
        )

    @staticmethod
    def track_attempt_expired(user_id: int, attempt_id: int) -> None:
        """Track an attempt found past its time limit."""
        AnalyticsTracker.track_event(
            EventType.ATTEMPT_EXPIRED,
            user_id=user_id,
            properties={"attempt_id": attempt_id},
        )

    @staticmethod
    def track_answer_submitted(
        user_id: int, attempt_id: int, question_id: int, is_update: bool
    ) -> None:
        """Track an answer save."""
        AnalyticsTracker.track_event(
            EventType.ANSWER_SUBMITTED,
            user_id=user_id,
            properties={
                "attempt_id": attempt_id,
                "question_id": question_id,
                "is_update": is_update,
            },
        )

    @staticmethod
    def track_answers_rescored(attempt_id: int, total: int, updated: int) -> None:
        """Track an admin answer rescoring run."""
        AnalyticsTracker.track_event(
            EventType.ANSWERS_RESCORED,
            properties={
                "attempt_id": attempt_id,
                "total_answers": total,
                "updated_count": updated,
            },
        )

    @staticmethod
    def track_result_calculated(
        user_id: int,
        attempt_id: int,
        result_id: int,
        scaled_score: float,
        grade: str,
        recalculated: bool = False,
    ) -> None:
        """Track result creation or recalculation."""
        AnalyticsTracker.track_event(
            EventType.RESULT_RECALCULATED if recalculated else EventType.RESULT_CALCULATED,
            user_id=user_id,
            properties={
                "attempt_id": attempt_id,
                "result_id": result_id,
                "scaled_score": scaled_score,
                "grade": grade,
            },
        )

    @staticmethod
    def track_trait_analytics(total_records: int, test_id: Optional[int]) -> None:
        """Track generation of a trait analytics report."""
        AnalyticsTracker.track_event(
            EventType.TRAIT_ANALYTICS_GENERATED,
            properties={"total_records": total_records, "test_id": test_id},
        )

    @staticmethod
    def track_api_error(
        method: str,
        path: str,
        error_type: str,
        error_message: str,
        user_id: Optional[int] = None,
    ) -> None:
        """Track an error response returned by the API."""
        AnalyticsTracker.track_event(
            EventType.API_ERROR,
            user_id=user_id,
            properties={
                "method": method,
                "path": path,
                "error_type": error_type,
                "error_message": error_message,
            },
        )


# Convenience alias
track = AnalyticsTracker.track_event
