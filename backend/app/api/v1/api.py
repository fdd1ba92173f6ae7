"""
API v1 router combining all v1 endpoints.
"""
from fastapi import APIRouter
from app.api.v1 import admin, attempts, health, results

api_router = APIRouter()

# Include all v1 routers
api_router.include_router(health.router, tags=["health"])
api_router.include_router(attempts.router, prefix="/attempts", tags=["attempts"])
api_router.include_router(results.router, prefix="/results", tags=["results"])
api_router.include_router(admin.router, prefix="/admin")
