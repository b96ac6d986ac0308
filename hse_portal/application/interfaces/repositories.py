"""Repository interfaces (ports) for the application layer.

Protocols define contracts for infrastructure implementations (DIP).
The document store is the narrow port onto the cloud document database;
the typed repositories are built on top of it.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from hse_portal.application.dtos.task import ApprovalTask
from hse_portal.domain.entities import (
    ApprovableRequest,
    DirectoryUser,
    FlowDefinition,
    FlowNotConfigured,
)


@dataclass(frozen=True)
class StoredDocument:
    """Snapshot of a stored document: path, id (last path segment), data, version."""

    path: str
    id: str
    data: dict[str, Any]
    version: str | None


OnChange = Callable[[StoredDocument | None], Awaitable[None]]
Unsubscribe = Callable[[], Awaitable[None]]


class IDocumentStore(Protocol):
    """Document database reachable by slash-separated path ("collection/doc/...")."""

    async def read(self, path: str) -> StoredDocument | None:
        """Point read; None when absent."""

    async def query(
        self, collection_path: str, field: str, value: Any, *, limit: int = 1000
    ) -> list[StoredDocument]:
        """Documents of a collection whose field equals value."""

    async def write(self, path: str, data: dict[str, Any]) -> str:
        """Create or replace the document; return its new version."""

    async def merge(self, path: str, partial: dict[str, Any]) -> str:
        """Merge top-level fields into the document (creating it if absent); return new version."""

    async def write_if_unchanged(
        self, path: str, data: dict[str, Any], expected_version: str
    ) -> str:
        """Replace the document only if its version still equals expected_version.

        Raises:
            VersionConflictException: If the document changed (or vanished) since it was read.
        """

    async def create(self, path: str, data: dict[str, Any]) -> str:
        """Create the document; fail if it exists.

        Raises:
            DocumentAlreadyExistsException: If the path is taken.
        """

    async def delete(self, path: str) -> None:
        """Delete the document. Idempotent."""

    async def subscribe(self, path: str, on_change: OnChange) -> Unsubscribe:
        """Call on_change with each new snapshot (None once deleted); return an async unsubscribe."""


class IFlowRepository(Protocol):
    """Flow definitions per tenant and process type."""

    async def get_flow(
        self, tenant_id: str, process_type: str
    ) -> FlowDefinition | FlowNotConfigured:
        """Return the flow, or FLOW_NOT_CONFIGURED when none is configured or it is disabled."""

    async def save_flow(self, tenant_id: str, flow: FlowDefinition) -> None:
        """Create or replace the tenant's flow for flow.process_type."""


class IRequestRepository(Protocol):
    """Approvable requests (one collection per process type, tenant-scoped)."""

    async def get(
        self, tenant_id: str, process_type: str, request_id: str
    ) -> ApprovableRequest | None:
        """Return the request with request.version set, or None."""

    async def create(self, request: ApprovableRequest) -> ApprovableRequest:
        """Persist a new request; return it with version set."""

    async def save(self, request: ApprovableRequest) -> ApprovableRequest:
        """Persist approval state conditionally on request.version.

        Raises:
            VersionConflictException: If the stored request changed since it was read.
        """

    async def delete(self, tenant_id: str, process_type: str, request_id: str) -> None:
        """Delete the request (withdrawal)."""

    async def subscribe(
        self,
        tenant_id: str,
        process_type: str,
        request_id: str,
        on_change: Callable[[ApprovableRequest | None], Awaitable[None]],
    ) -> Unsubscribe:
        """Deliver fresh request snapshots (None once deleted)."""


class IUserDirectory(Protocol):
    """Read-only access to the tenant's user directory."""

    async def get_user(self, tenant_id: str, user_id: str) -> DirectoryUser | None:
        """Return the user, or None if absent or in another tenant."""

    async def list_active_users(self, tenant_id: str) -> list[DirectoryUser]:
        """Return all active users of the tenant."""


class ITaskRepository(Protocol):
    """Approval tasks given to approvers."""

    async def create_if_absent(self, task: ApprovalTask) -> bool:
        """Store the task unless one with the same id exists; return True if created."""

    async def list_for_request(
        self, tenant_id: str, request_id: str
    ) -> list[ApprovalTask]:
        """All tasks of a request."""

    async def close_for_request(
        self,
        tenant_id: str,
        request_id: str,
        *,
        completed_by: str | None = None,
        level_index: int | None = None,
    ) -> int:
        """Close pending tasks of a request; return how many were closed.

        With completed_by: complete that assignee's tasks at level_index.
        With level_index only: complete every pending task at that level.
        With neither: cancel every pending task of the request.
        """

    async def delete_for_request(self, tenant_id: str, request_id: str) -> int:
        """Delete every task of a request (withdrawal); return how many were deleted."""
