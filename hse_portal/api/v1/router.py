"""API v1 router aggregation.

Includes all endpoint modules with consistent prefix and tags. All routes
use dependencies from hse_portal.api.v1.dependencies (no manual repo/service construction).
"""

from fastapi import APIRouter

from hse_portal.api.v1.endpoints import flows, health, requests

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(flows.router, prefix="/flows", tags=["flows"])
api_router.include_router(requests.router, prefix="/requests", tags=["requests"])
