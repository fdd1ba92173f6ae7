"""
Database error handling utilities.

This module centralizes the common pattern of:
1. Rolling back the database session on error
2. Logging the error with context
3. Raising an appropriate HTTPException

Usage:
    from app.core.db_error_handling import async_handle_db_error

    async with async_handle_db_error(db, "finish attempt"):
        attempt.status = AttemptStatus.COMPLETED
        await db.commit()
        return build_response(attempt)
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession


logger = logging.getLogger(__name__)


@asynccontextmanager
async def async_handle_db_error(
    db: AsyncSession,
    operation_name: str,
    *,
    reraise_http_exceptions: bool = True,
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    detail_template: Optional[str] = None,
    log_level: int = logging.ERROR,
) -> AsyncGenerator[None, None]:
    """Async context manager for handling database errors consistently.

    Args:
        db: The async session to roll back on error.
        operation_name: Human-readable name of the operation for error messages
            and logging (e.g., "submit answer", "calculate result").
        reraise_http_exceptions: If True (default), HTTPExceptions raised within
            the context pass through untouched.
        status_code: HTTP status code for the raised HTTPException.
        detail_template: Optional template for the error detail; may contain
            {operation_name} and {error}. Defaults to
            "Failed to {operation_name}. Please try again later."
        log_level: Logging level for error messages.

    Raises:
        HTTPException: On any other exception, with the session rolled back.

    The endpoint's return statement belongs inside the block so that
    response construction failures are logged with the same context.
    """
    try:
        yield
    except HTTPException as e:
        if reraise_http_exceptions:
            raise
        await db.rollback()
        logger.log(
            log_level,
            f"Database error during {operation_name}: {e.detail}",
            exc_info=True,
        )
        if detail_template:
            detail = detail_template.format(
                operation_name=operation_name, error=e.detail
            )
        else:
            detail = f"Failed to {operation_name}. Please try again later."
        raise HTTPException(status_code=status_code, detail=detail)
    except Exception as e:
        await db.rollback()
        logger.log(
            log_level,
            f"Database error during {operation_name}: {e}",
            exc_info=True,
        )
        if detail_template:
            detail = detail_template.format(operation_name=operation_name, error=str(e))
        else:
            detail = f"Failed to {operation_name}. Please try again later."
        raise HTTPException(status_code=status_code, detail=detail)
