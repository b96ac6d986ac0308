"""Tenant user directory over IDocumentStore (implements IUserDirectory).

Users live in users/{user_id} with a tenant_id field. Field names written by
the browser client (companyId, displayName, jobTitle, lineManager,
status == "active") are read as fallbacks.
"""

from __future__ import annotations

from typing import Any

from hse_portal.application.interfaces.repositories import IDocumentStore
from hse_portal.domain.entities import DirectoryUser
from hse_portal.infrastructure.firebase.collections import COLLECTION_USERS, user_path


def _first(data: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = data.get(key)
        if isinstance(value, dict):
            value = value.get("label") or value.get("text") or value.get("value")
        if value not in (None, ""):
            return str(value)
    return None


def _is_active(data: dict[str, Any]) -> bool:
    if "is_active" in data:
        return bool(data["is_active"])
    status = data.get("status")
    return status is None or str(status).lower() == "active"


def user_from_document(user_id: str, data: dict[str, Any]) -> DirectoryUser:
    return DirectoryUser(
        id=user_id,
        tenant_id=_first(data, "tenant_id", "companyId") or "",
        display_name=_first(data, "display_name", "displayName"),
        first_name=_first(data, "first_name", "firstName"),
        last_name=_first(data, "last_name", "lastName"),
        email=_first(data, "email"),
        job_title=_first(data, "job_title", "jobTitle"),
        department=_first(data, "department"),
        line_manager_id=_first(data, "line_manager_id", "lineManagerId", "lineManager"),
        is_active=_is_active(data),
    )


class UserDirectory:
    """Read-only directory lookups, always scoped to one tenant."""

    def __init__(self, store: IDocumentStore, *, scan_limit: int = 1000) -> None:
        self._store = store
        self._scan_limit = scan_limit

    async def get_user(self, tenant_id: str, user_id: str) -> DirectoryUser | None:
        """Return the user if they exist and belong to the tenant."""
        doc = await self._store.read(user_path(user_id))
        if doc is None:
            return None
        user = user_from_document(doc.id, doc.data)
        if user.tenant_id != tenant_id:
            return None
        return user

    async def list_active_users(self, tenant_id: str) -> list[DirectoryUser]:
        docs = await self._store.query(
            COLLECTION_USERS, "tenant_id", tenant_id, limit=self._scan_limit
        )
        users = [user_from_document(doc.id, doc.data) for doc in docs]
        return [u for u in users if u.is_active]
