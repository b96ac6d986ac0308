"""Process-wide Firestore REST client.

Built once at startup from the service account in FIREBASE_SERVICE_ACCOUNT_KEY
(inline JSON) or FIREBASE_SERVICE_ACCOUNT_PATH (file); closed on shutdown.
"""

import json
from pathlib import Path
from typing import Any

from hse_portal.core.config import Settings, get_settings
from hse_portal.infrastructure.firebase._rest_client import (
    FirestoreRESTClient,
    service_account_credentials,
)
from hse_portal.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

_firestore_client: FirestoreRESTClient | None = None


def load_service_account(settings: Settings) -> dict[str, Any] | None:
    """Service account info from settings; None when neither source is usable.

    Raises:
        ValueError: FIREBASE_SERVICE_ACCOUNT_KEY is set but is not JSON.
    """
    if settings.firebase_service_account_key is not None:
        raw = settings.firebase_service_account_key.get_secret_value()
        if raw:
            try:
                return json.loads(raw)
            except json.JSONDecodeError as e:
                raise ValueError("FIREBASE_SERVICE_ACCOUNT_KEY is not valid JSON") from e
    if not settings.firebase_service_account_path:
        return None
    key_file = Path(settings.firebase_service_account_path).expanduser()
    if not key_file.is_file():
        logger.warning("Service account file not found: %s", key_file)
        return None
    return json.loads(key_file.read_text(encoding="utf-8"))


def init_firebase(settings: Settings | None = None) -> bool:
    """Create the shared client if credentials allow; idempotent.

    Returns:
        False when credentials are missing or invalid (the store then answers 503).
    """
    global _firestore_client
    if _firestore_client is not None:
        return True
    try:
        info = load_service_account(settings or get_settings())
        if not info:
            return False
        project_id = info.get("project_id")
        if not project_id:
            logger.error("Service account JSON has no project_id")
            return False
        _firestore_client = FirestoreRESTClient(
            project_id, service_account_credentials(info)
        )
    except Exception:
        logger.exception("Firestore client initialization failed")
        return False
    logger.info("Firestore REST client ready for project %s", project_id)
    return True


def get_firestore_client() -> FirestoreRESTClient | None:
    return _firestore_client


async def close_firebase() -> None:
    """Close the shared client's connection pool (app shutdown)."""
    global _firestore_client
    if _firestore_client is None:
        return
    await _firestore_client.aclose()
    _firestore_client = None
    logger.info("Firestore HTTP client closed")
