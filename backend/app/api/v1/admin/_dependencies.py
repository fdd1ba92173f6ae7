"""
Shared dependencies for admin endpoints.
"""
import logging
import secrets

from fastapi import Header

from app.core.config import settings
from app.core.error_responses import (
    ErrorMessages,
    raise_not_configured,
    raise_unauthorized,
)

# Configure logger for admin operations
logger = logging.getLogger(__name__)


async def verify_admin_token(x_admin_token: str = Header(...)) -> bool:
    """
    Verify admin token from request header.

    Uses constant-time comparison to prevent timing attacks.

    Args:
        x_admin_token: Admin token from X-Admin-Token header

    Returns:
        bool: True if token is valid

    Raises:
        HTTPException: 500 if no admin token is configured, 401 if invalid
    """
    if not settings.ADMIN_TOKEN:
        raise_not_configured(ErrorMessages.ADMIN_TOKEN_NOT_CONFIGURED)

    if not secrets.compare_digest(x_admin_token, settings.ADMIN_TOKEN):
        raise_unauthorized(
            ErrorMessages.ADMIN_TOKEN_INVALID, include_www_authenticate=False
        )

    return True
