"""Span helpers for the approval use cases."""

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

P = ParamSpec("P")
R = TypeVar("R")

# Keyword arguments copied onto spans as approval.<name>; payloads and comments never are.
SPAN_ARGUMENTS = (
    "tenant_id",
    "process_type",
    "request_id",
    "level_index",
    "actor_id",
    "decision",
)

_tracer = trace.get_tracer("hse_portal.approvals")


def _span_value(value: Any) -> str | int | bool:
    if isinstance(value, (bool, int)):
        return value
    return str(getattr(value, "value", value))


def traced(
    span_name: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Run an async use case method inside a span named span_name.

    Identifying keyword arguments (SPAN_ARGUMENTS) become span attributes.
    Domain refusals and conflicts still mark the span as an error, with the
    exception recorded, and propagate unchanged.
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            with _tracer.start_as_current_span(
                span_name, record_exception=False, set_status_on_exception=False
            ) as span:
                for name in SPAN_ARGUMENTS:
                    value = kwargs.get(name)
                    if value is not None:
                        span.set_attribute(f"approval.{name}", _span_value(value))
                try:
                    result = await func(*args, **kwargs)
                except Exception as exc:
                    span.record_exception(exc)
                    span.set_status(Status(StatusCode.ERROR, type(exc).__name__))
                    raise
                span.set_status(Status(StatusCode.OK))
                return result

        return wrapper

    return decorator


def add_span_event(name: str, attributes: dict[str, Any] | None = None) -> None:
    """Attach an event (e.g. a lost optimistic write) to the active span, if any."""
    span = trace.get_current_span()
    if span.is_recording():
        span.add_event(name, attributes=attributes or {})
