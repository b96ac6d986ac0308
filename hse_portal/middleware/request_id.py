"""Request ID middleware.

Forwards a well-formed client X-Request-ID or mints a CUID, stores it on
scope state, echoes it on the response and writes one access-log line per
HTTP request. Raw ASGI so WebSocket watchers pass straight through.
"""

import re
import time
from typing import Callable

from hse_portal.shared.telemetry.logging import get_logger
from hse_portal.shared.utils import generate_cuid

logger = get_logger(__name__)

_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def _header(scope: dict, name: str) -> str | None:
    want = name.lower().encode()
    for key, value in scope.get("headers", []):
        if key.lower() == want:
            return value.decode("utf-8", errors="replace")
    return None


def sanitize_request_id(raw: str | None) -> str:
    """Return raw when it is safe to log, otherwise a fresh id."""
    candidate = (raw or "").strip()
    if _REQUEST_ID_PATTERN.match(candidate):
        return candidate
    return generate_cuid()


def RequestIDMiddleware(app: Callable, header_name: str = "X-Request-ID") -> Callable:
    """Tag each HTTP request with an id and log method, path, status and duration."""

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return
        request_id = sanitize_request_id(_header(scope, header_name))
        scope.setdefault("state", {})["request_id"] = request_id
        started = time.perf_counter()
        status = 500

        async def send_wrapper(message: dict) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
                headers = list(message.get("headers", []))
                headers.append((header_name.encode(), request_id.encode()))
                message["headers"] = headers
            await send(message)

        try:
            await app(scope, receive, send_wrapper)
        finally:
            logger.info(
                "%s %s -> %s (%.1f ms) [%s]",
                scope.get("method"),
                scope.get("path"),
                status,
                (time.perf_counter() - started) * 1000,
                request_id,
            )

    return asgi_app
