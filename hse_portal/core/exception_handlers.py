"""Exception handlers: every error leaves the API as {"error", "message", ...} JSON.

Domain error codes map to HTTP statuses below; unknown codes answer 400.
Bodies carry the request id set by RequestIDMiddleware so clients can quote it.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from hse_portal.core.config import get_settings
from hse_portal.domain.exceptions import HsePortalException
from hse_portal.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

ERROR_CODE_STATUS: dict[str, int] = {
    "VALIDATION_ERROR": 400,
    "INVALID_FLOW_DEFINITION": 400,
    "UNAUTHORIZED_ACTION": 403,
    "RESOURCE_NOT_FOUND": 404,
    "APPROVAL_CONFLICT": 409,
    "REQUEST_CLOSED": 409,
    "VERSION_CONFLICT": 409,
    "DOCUMENT_ALREADY_EXISTS": 409,
    "DOCUMENT_EXISTS": 409,
    "PRECONDITION_FAILED": 409,
    "DOCUMENT_STORE_UNAVAILABLE": 503,
}


def _error_response(
    request: Request, status_code: int, content: dict[str, Any], headers=None
) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        content = {**content, "request_id": request_id}
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _domain_error(request: Request, exc: HsePortalException) -> JSONResponse:
    status = ERROR_CODE_STATUS.get(exc.error_code, 400)
    if status >= 500:
        logger.error("%s on %s: %s", exc.error_code, request.url.path, exc.message)
    elif status in (403, 409):
        logger.info("%s on %s: %s", exc.error_code, request.url.path, exc.message)
    return _error_response(request, status, exc.to_dict())


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """Pydantic errors with ctx values stringified (validators may put exceptions there)."""
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(error)
    return errors


def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(
        request,
        422,
        {
            "error": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": jsonable_errors(exc),
        },
    )


def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(
        request,
        exc.status_code,
        {"error": "HTTP_ERROR", "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    """500; the exception text is only exposed in debug mode."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = str(exc) if get_settings().debug else "Internal server error"
    return _error_response(request, 500, {"error": "INTERNAL_ERROR", "message": message})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HsePortalException, _domain_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(Exception, _unhandled_error)
