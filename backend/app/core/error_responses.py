"""
Standardized error response messages and builders.

This module provides consistent error messages and HTTPException builders
for the entire API, keeping user-facing wording separate from log messages.

Error Message Format Guidelines:
- Use sentence case (capitalize first letter only)
- End with a period for complete sentences
- Include relevant IDs in parentheses when helpful for debugging: "(ID: 123)"
- Use "Please try again later." for transient server errors

Usage:
    from app.core.error_responses import ErrorMessages, raise_not_found

    if attempt is None:
        raise_not_found(ErrorMessages.ATTEMPT_NOT_FOUND)

    raise_conflict(ErrorMessages.attempt_already_finished("abandoned"))
"""

from typing import NoReturn, Optional

from fastapi import HTTPException, status

from app.core.scoring.exceptions import (
    DataIntegrityError,
    ResultConflictError,
    ScoringNotFoundError,
    ScoringPreconditionError,
)


class ErrorMessages:
    """Centralized error message constants and templates.

    Naming Convention:
    - Constants: SCREAMING_SNAKE_CASE for static messages
    - Methods: snake_case for templates that accept parameters
    """

    # ==========================================================================
    # Authentication Errors (401)
    # ==========================================================================
    INVALID_TOKEN = "Invalid authentication token."
    INVALID_TOKEN_PAYLOAD = "Invalid token payload."
    USER_NOT_FOUND_AUTH = "User not found."
    ADMIN_TOKEN_INVALID = "Invalid admin token."

    # ==========================================================================
    # Authorization Errors (403)
    # ==========================================================================
    ATTEMPT_ACCESS_DENIED = "Not authorized to access this test attempt."
    RESULT_ACCESS_DENIED = "Not authorized to access this test result."

    # ==========================================================================
    # Not Found Errors (404)
    # ==========================================================================
    TEST_NOT_FOUND = "Test not found."
    ATTEMPT_NOT_FOUND = "Test attempt not found."
    RESULT_NOT_FOUND = "Test result not found."
    QUESTION_NOT_FOUND = "Question does not exist or does not belong to this test."

    # ==========================================================================
    # Conflict Errors (409)
    # ==========================================================================
    RESULT_ALREADY_EXISTS = (
        "A result already exists for this attempt. "
        "Set force_recalculate to overwrite it."
    )
    ATTEMPT_NUMBER_CONFLICT = (
        "Another attempt for this test was started at the same time. "
        "Please try again."
    )

    # ==========================================================================
    # Bad Request Errors (400)
    # ==========================================================================
    TEST_NOT_ACTIVE = "Test is not available for new attempts."
    INVALID_SESSION = "Session code is invalid or the test is not part of this session."
    SESSION_NOT_ACTIVE = "Session is not currently active."
    ATTEMPT_NOT_MODIFIABLE = (
        "Cannot submit answers to a completed, abandoned or expired attempt."
    )
    ATTEMPT_NOT_COMPLETED = "Results can only be calculated for completed attempts."
    ATTEMPT_OR_RESULT_REQUIRED = "Either attempt_id or result_id is required."
    INVALID_DATE_RANGE = "date_from must not be later than date_to."

    # ==========================================================================
    # Server Errors (500)
    # ==========================================================================
    DATA_INTEGRITY_ERROR = (
        "Attempt data is inconsistent and cannot be scored. Please contact support."
    )
    RESULT_CALCULATION_FAILED = (
        "Failed to calculate test result. Please try again later."
    )
    TRAIT_ANALYTICS_FAILED = (
        "Failed to generate trait analytics. Please try again later."
    )

    # ==========================================================================
    # Configuration Errors (500)
    # ==========================================================================
    ADMIN_TOKEN_NOT_CONFIGURED = "Admin token not configured on server."

    # ==========================================================================
    # Template Methods for Dynamic Messages
    # ==========================================================================
    @staticmethod
    def attempt_already_finished(current_status: str) -> str:
        """Message for a finish request that contradicts the stored terminal status."""
        return (
            f"Test attempt is already {current_status}. "
            "Finished attempts cannot change status."
        )

    @staticmethod
    def invalid_answer(reason: str) -> str:
        """Message when an answer does not fit its question type."""
        return f"Invalid answer: {reason}"

    @staticmethod
    def database_operation_failed(operation: str) -> str:
        """Generic message for database operation failures."""
        return f"Failed to {operation}. Please try again later."


# ==============================================================================
# HTTPException Builder Functions
# ==============================================================================


def raise_bad_request(detail: str) -> NoReturn:
    """Raise a 400 Bad Request exception.

    Args:
        detail: User-facing error message

    Raises:
        HTTPException: 400 Bad Request
    """
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=detail,
    )


def raise_unauthorized(
    detail: str,
    include_www_authenticate: bool = True,
) -> NoReturn:
    """Raise a 401 Unauthorized exception.

    Args:
        detail: User-facing error message
        include_www_authenticate: Whether to include WWW-Authenticate header

    Raises:
        HTTPException: 401 Unauthorized
    """
    headers = {"WWW-Authenticate": "Bearer"} if include_www_authenticate else None
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers=headers,
    )


def raise_forbidden(detail: str) -> NoReturn:
    """Raise a 403 Forbidden exception for ownership or role mismatches."""
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=detail,
    )


def raise_not_found(detail: str) -> NoReturn:
    """Raise a 404 Not Found exception."""
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=detail,
    )


def raise_conflict(detail: str) -> NoReturn:
    """Raise a 409 Conflict exception.

    Use when the request conflicts with current state (e.g., duplicate creation).
    """
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=detail,
    )


def raise_server_error(
    detail: str,
    error_id: Optional[str] = None,
) -> NoReturn:
    """Raise a 500 Internal Server Error exception.

    Always use user-friendly messages; log technical details separately.

    Args:
        detail: User-facing error message (should be generic and friendly)
        error_id: Optional error tracking ID to include in response

    Raises:
        HTTPException: 500 Internal Server Error
    """
    if error_id:
        detail = f"{detail} (Error ID: {error_id})"

    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=detail,
    )


def raise_not_configured(detail: str) -> NoReturn:
    """Raise a 500 error for missing server configuration."""
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=detail,
    )


def raise_for_scoring_error(error: Exception) -> NoReturn:
    """Translate a result calculation failure into the matching HTTP error.

    Args:
        error: An exception raised by app.core.scoring

    Raises:
        HTTPException: 404, 400, 409 or 500 depending on the failure
    """
    if isinstance(error, ScoringNotFoundError):
        raise_not_found(
            ErrorMessages.RESULT_NOT_FOUND
            if error.entity == "Result"
            else ErrorMessages.ATTEMPT_NOT_FOUND
        )
    if isinstance(error, ScoringPreconditionError):
        raise_bad_request(ErrorMessages.ATTEMPT_NOT_COMPLETED)
    if isinstance(error, ResultConflictError):
        raise_conflict(ErrorMessages.RESULT_ALREADY_EXISTS)
    if isinstance(error, DataIntegrityError):
        raise_server_error(ErrorMessages.DATA_INTEGRITY_ERROR)
    raise_server_error(ErrorMessages.RESULT_CALCULATION_FAILED)
