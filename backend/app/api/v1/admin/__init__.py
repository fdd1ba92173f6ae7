"""
Admin API endpoints.

All endpoints require authentication via the X-Admin-Token header.

Submodules:
    - results: Result (re)calculation and answer re-scoring
    - analytics: Aggregate trait analytics
"""
from fastapi import APIRouter

from . import analytics, results

# Create the main admin router
router = APIRouter()

router.include_router(
    results.router,
    tags=["Admin - Results"],
)

router.include_router(
    analytics.router,
    tags=["Admin - Analytics"],
)
