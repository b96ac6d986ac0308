"""Security helpers (JWT bearer tokens)."""

from hse_portal.infrastructure.security.jwt import (
    TokenClaims,
    create_access_token,
    verify_token,
)

__all__ = ["TokenClaims", "create_access_token", "verify_token"]
