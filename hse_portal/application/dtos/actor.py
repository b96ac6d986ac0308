"""Current actor (authenticated user acting through the API)."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CurrentActor:
    """Authenticated user resolved from the bearer token and the directory.

    is_admin comes from the token's roles claim; administrators may withdraw
    any open request of their tenant.
    """

    id: str
    tenant_id: str
    display_name: str
    job_title: str | None = None
    department: str | None = None
    is_admin: bool = False
