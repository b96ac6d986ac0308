"""JWT bearer tokens identifying the acting user.

Claims: sub (user id), tenant_id, roles (list, "admin" grants withdrawal of
any request), exp. Secret and algorithm come from hse_portal.core.config.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, cast

from jose import JWTError, jwt

from hse_portal.core.config import get_settings

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims of an access token."""

    user_id: str
    tenant_id: str | None
    roles: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLE in self.roles


def create_access_token(
    user_id: str,
    tenant_id: str,
    *,
    roles: list[str] | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed access token for a directory user.

    Args:
        user_id: Directory user id (becomes sub).
        tenant_id: Tenant the token is valid for.
        roles: Optional role names (e.g. ["admin"]).
        expires_delta: Optional TTL; else uses settings.access_token_expire_minutes.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    ttl = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims: dict[str, Any] = {
        "sub": user_id,
        "tenant_id": tenant_id,
        "roles": list(roles or []),
        "exp": datetime.now(UTC) + ttl,
    }
    encoded = jwt.encode(
        claims,
        settings.secret_key.get_secret_value(),
        algorithm=settings.algorithm,
    )
    return cast(str, encoded)


def verify_token(token: str) -> TokenClaims:
    """Verify and decode a JWT.

    Raises:
        ValueError: If the token is invalid, expired, or missing sub/exp.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.secret_key.get_secret_value(),
            algorithms=[settings.algorithm],
            options={"require_exp": True, "require_sub": True},
        )
    except JWTError as e:
        raise ValueError(f"Invalid token: {e!s}") from e
    if not payload.get("sub"):
        raise ValueError("Token missing required claim: sub")
    roles = payload.get("roles") or []
    return TokenClaims(
        user_id=str(payload["sub"]),
        tenant_id=payload.get("tenant_id"),
        roles=tuple(str(r) for r in roles) if isinstance(roles, list) else (),
    )
