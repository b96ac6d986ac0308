"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Backend-specific requirements (e.g. Firebase
credentials when database_backend is 'firestore') are validated at load time.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env."""

    # App
    app_name: str = "hse-portal"
    app_version: str = "1.0.0"
    debug: bool = False

    # Document store: "firestore" (Firestore REST) or "memory" (in-process, dev/tests)
    database_backend: str = "firestore"

    # Firebase / Firestore: use key (env) or path (file).
    firebase_service_account_key: SecretStr | None = None
    firebase_service_account_path: str | None = None

    # Security
    secret_key: SecretStr = SecretStr("")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 480  # 8 hours

    # CORS
    allowed_origins: str = "http://localhost:3000,http://localhost:8080"

    # Tenant
    tenant_header_name: str = "X-Tenant-ID"
    request_id_header: str = "X-Request-ID"

    # Approvals
    # Optimistic-write attempts for a single approve/reject before reporting a conflict.
    approval_write_max_attempts: int = 3
    # Polling interval for Firestore document subscriptions (no realtime listener over REST).
    subscription_poll_interval_seconds: float = 5.0
    # Task due date when neither the flow nor the process type defines one.
    default_due_days: int = 3
    # Max users scanned per tenant when resolving function (job title) approvers.
    directory_scan_limit: int = 1000

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_required_and_backend(self) -> "Settings":
        """Validate required env and document store backend.

        - Firestore: FIREBASE_SERVICE_ACCOUNT_KEY or FIREBASE_SERVICE_ACCOUNT_PATH required.
        - Memory: nothing else required (data lives in process).
        """
        if self.database_backend == "firestore":
            has_key = (
                self.firebase_service_account_key
                and self.firebase_service_account_key.get_secret_value()
            )
            if not has_key and not self.firebase_service_account_path:
                raise ValueError(
                    "When database_backend is 'firestore', set FIREBASE_SERVICE_ACCOUNT_KEY (full JSON string) "
                    "or FIREBASE_SERVICE_ACCOUNT_PATH (path to JSON file)."
                )
        elif self.database_backend != "memory":
            raise ValueError(
                f"database_backend must be 'firestore' or 'memory', got: {self.database_backend!r}"
            )
        if not self.secret_key.get_secret_value():
            raise ValueError(
                "SECRET_KEY is required. Generate with: openssl rand -hex 32."
            )
        if self.approval_write_max_attempts < 1:
            raise ValueError("APPROVAL_WRITE_MAX_ATTEMPTS must be at least 1")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
