"""Directory users and resolved approvers."""

from __future__ import annotations

from dataclasses import dataclass

NOT_ASSIGNED = "Not assigned"


@dataclass(frozen=True)
class DirectoryUser:
    """A user record from the tenant directory (only fields the engine needs)."""

    id: str
    tenant_id: str
    display_name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    job_title: str | None = None
    department: str | None = None
    line_manager_id: str | None = None
    is_active: bool = True

    @property
    def name(self) -> str:
        """Display name, else "first last", else email, else "Not assigned"."""
        if self.display_name:
            return self.display_name
        full = f"{self.first_name or ''} {self.last_name or ''}".strip()
        if full:
            return full
        return self.email or NOT_ASSIGNED


@dataclass(frozen=True)
class ResolvedApprover:
    """A concrete approver produced by resolving a role reference.

    Transient: recomputed on every resolution, never persisted.
    """

    identity: str
    display_name: str
    title: str = ""
    department: str = ""
    email: str | None = None

    @classmethod
    def from_user(cls, user: DirectoryUser) -> ResolvedApprover:
        return cls(
            identity=user.id,
            display_name=user.name,
            title=user.job_title or "",
            department=user.department or "",
            email=user.email,
        )
