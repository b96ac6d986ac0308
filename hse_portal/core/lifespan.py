"""Application lifespan: startup and shutdown.

Single place for all startup/shutdown logic (SRP). Used by main.py;
no business logic here, only wiring of infrastructure (logging, document
store, telemetry, Firestore HTTP client).
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from hse_portal.core.config import get_settings
from hse_portal.infrastructure.exceptions import DocumentStoreUnavailableError
from hse_portal.infrastructure.store_factory import DocumentStoreFactory
from hse_portal.shared.telemetry.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup order: logging, document store, telemetry (if enabled).
    Shutdown order: telemetry shutdown, Firestore HTTP client close.
    """
    settings = get_settings()
    setup_logging()

    # ---- Startup ----
    if getattr(app.state, "document_store", None) is None:
        try:
            app.state.document_store = DocumentStoreFactory.create_document_store(settings)
            logger.info("Document store ready (%s)", settings.database_backend)
        except DocumentStoreUnavailableError:
            # Requests needing the store answer 503 until credentials are fixed.
            app.state.document_store = None
            logger.error(
                "Document store %s unavailable at startup", settings.database_backend
            )

    if settings.telemetry_enabled:
        from hse_portal.shared.telemetry.telemetry import TelemetryConfig, set_telemetry

        telemetry = TelemetryConfig.from_settings(settings)
        if telemetry.install(app):
            set_telemetry(telemetry)

    yield

    # ---- Shutdown ----
    from hse_portal.shared.telemetry.telemetry import get_telemetry, set_telemetry

    telemetry_instance = get_telemetry()
    if telemetry_instance is not None:
        telemetry_instance.shutdown()
        set_telemetry(None)
        logger.info("Telemetry shutdown complete")

    if settings.database_backend == "firestore":
        from hse_portal.infrastructure.firebase import close_firebase

        await close_firebase()
    app.state.document_store = None
