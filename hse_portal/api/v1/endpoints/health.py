"""Health check endpoint. Used for liveness and readiness probes."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from hse_portal.core.config import get_settings
from hse_portal.schemas.health import (
    HealthResponse,
    ReadinessErrorResponse,
    ReadinessResponse,
)

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Return simple ok status for liveness."""
    return HealthResponse()


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Document store unavailable", "model": ReadinessErrorResponse}},
)
def readiness_check(request: Request) -> ReadinessResponse | JSONResponse:
    """Return 200 once the lifespan created the document store; 503 otherwise."""
    backend = get_settings().database_backend
    if getattr(request.app.state, "document_store", None) is None:
        return JSONResponse(
            status_code=503,
            content=ReadinessErrorResponse(
                message=f"Document store '{backend}' is not available",
            ).model_dump(),
        )
    return ReadinessResponse(database_backend=backend)
