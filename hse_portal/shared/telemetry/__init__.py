"""Shared telemetry: logging setup, OpenTelemetry config, and tracing helpers."""

from hse_portal.shared.telemetry.logging import get_logger, setup_logging
from hse_portal.shared.telemetry.telemetry import (
    TelemetryConfig,
    get_telemetry,
    set_telemetry,
)
from hse_portal.shared.telemetry.tracing import add_span_event, traced

__all__ = [
    "setup_logging",
    "get_logger",
    "TelemetryConfig",
    "get_telemetry",
    "set_telemetry",
    "traced",
    "add_span_event",
]
