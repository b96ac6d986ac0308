"""OpenTelemetry setup for the approvals service.

One TelemetryConfig per process: built from settings in the lifespan,
installed on the FastAPI app (server spans, Firestore httpx spans, trace ids
in log records) and shut down with the app.
"""

import logging
import threading

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased

from hse_portal.core.config import Settings

logger = logging.getLogger(__name__)

# Probes and watcher sockets would drown the useful spans.
_UNTRACED_URLS = "/api/v1/health,/api/v1/health/ready,.*/watch"


class TelemetryConfig:
    """Tracer provider plus the instrumentations the service uses."""

    def __init__(
        self,
        service_name: str,
        service_version: str,
        *,
        environment: str = "development",
        exporter: str = "console",
        otlp_endpoint: str | None = None,
        sample_rate: float = 1.0,
    ) -> None:
        self.service_name = service_name
        self.service_version = service_version
        self.environment = environment
        self.exporter = exporter
        self.otlp_endpoint = otlp_endpoint
        self.sample_rate = sample_rate
        self.tracer_provider: TracerProvider | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "TelemetryConfig":
        return cls(
            settings.app_name,
            settings.app_version,
            environment=settings.telemetry_environment,
            exporter=settings.telemetry_exporter,
            otlp_endpoint=settings.telemetry_otlp_endpoint,
            sample_rate=settings.telemetry_sample_rate,
        )

    def _span_exporter(self) -> SpanExporter | None:
        """Exporter for the configured name; None for "none"."""
        if self.exporter == "none":
            return None
        if self.exporter == "otlp":
            if self.otlp_endpoint:
                return OTLPSpanExporter(
                    endpoint=self.otlp_endpoint,
                    insecure=self.otlp_endpoint.startswith("http://"),
                )
            logger.warning("TELEMETRY_OTLP_ENDPOINT not set; exporting spans to console")
        elif self.exporter != "console":
            logger.warning("Unknown span exporter %r; exporting spans to console", self.exporter)
        return ConsoleSpanExporter()

    def install(self, app: FastAPI) -> bool:
        """Create the global tracer provider and instrument app, httpx and logging.

        Returns:
            False when setup failed; the service then runs untraced.
        """
        try:
            provider = TracerProvider(
                resource=Resource(
                    attributes={
                        SERVICE_NAME: self.service_name,
                        SERVICE_VERSION: self.service_version,
                        "deployment.environment": self.environment,
                    }
                ),
                sampler=ParentBased(TraceIdRatioBased(self.sample_rate)),
            )
            exporter = self._span_exporter()
            if exporter is not None:
                provider.add_span_processor(BatchSpanProcessor(exporter))
            trace.set_tracer_provider(provider)

            FastAPIInstrumentor.instrument_app(
                app, tracer_provider=provider, excluded_urls=_UNTRACED_URLS
            )
            HTTPXClientInstrumentor().instrument(tracer_provider=provider)
            LoggingInstrumentor().instrument(
                tracer_provider=provider, set_logging_format=True
            )
        except Exception:
            logger.exception("Failed to initialize telemetry; continuing without tracing")
            return False
        self.tracer_provider = provider
        logger.info(
            "Telemetry on: %s %s (%s exporter, sample rate %s)",
            self.service_name,
            self.service_version,
            self.exporter,
            self.sample_rate,
        )
        return True

    def shutdown(self) -> None:
        """Flush pending spans and stop the provider."""
        if self.tracer_provider is None:
            return
        try:
            self.tracer_provider.shutdown()
        except Exception:
            logger.exception("Error flushing spans on shutdown")
        self.tracer_provider = None


_telemetry: TelemetryConfig | None = None
_telemetry_lock = threading.Lock()


def get_telemetry() -> TelemetryConfig | None:
    with _telemetry_lock:
        return _telemetry


def set_telemetry(telemetry: TelemetryConfig | None) -> None:
    """Install (or clear, on shutdown) the process-wide telemetry."""
    global _telemetry
    with _telemetry_lock:
        _telemetry = telemetry
