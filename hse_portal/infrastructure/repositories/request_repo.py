"""Approvable request repository over IDocumentStore (implements IRequestRepository).

Approval state is stored in the browser client's layout so both can read it:

    status: "pending" | "partially-approved" | "approved" | "rejected"
    approvalStatus: {"level1": {isCompleted, approvals: [
        {approverId, status: "approved" | "rejected", approvedAt, comments, revision}
    ]}}

Actions written before revisions existed have no revision and count as revision 1.
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from typing import Any

from hse_portal.application.interfaces.repositories import (
    IDocumentStore,
    StoredDocument,
    Unsubscribe,
)
from hse_portal.domain.entities import ApprovableRequest, ApprovalAction, LevelState
from hse_portal.domain.enums import Decision, OverallStatus
from hse_portal.infrastructure.firebase.collections import request_path
from hse_portal.shared.telemetry.logging import get_logger
from hse_portal.shared.utils.datetime import parse_timestamp, utc_now

logger = get_logger(__name__)

_LEVEL_KEY = re.compile(r"^level(\d+)$")
_DECISIONS = {
    "approve": Decision.APPROVE,
    "approved": Decision.APPROVE,
    "reject": Decision.REJECT,
    "rejected": Decision.REJECT,
}
_STORED_DECISION = {Decision.APPROVE: "approved", Decision.REJECT: "rejected"}


def _action_from_dict(raw: dict[str, Any]) -> ApprovalAction | None:
    decision = _DECISIONS.get(str(raw.get("status") or raw.get("decision") or "").lower())
    actor_id = raw.get("approverId") or raw.get("actor_id")
    if decision is None or not actor_id:
        return None
    return ApprovalAction(
        actor_id=str(actor_id),
        decision=decision,
        timestamp=parse_timestamp(raw.get("approvedAt") or raw.get("timestamp")) or utc_now(),
        comment=str(raw.get("comments") or raw.get("comment") or ""),
        revision=int(raw.get("revision") or 1),
    )


def _approvals_from_dict(raw: dict[str, Any]) -> dict[int, LevelState]:
    approvals: dict[int, LevelState] = {}
    for key, value in (raw or {}).items():
        match = _LEVEL_KEY.match(str(key))
        if not match or not isinstance(value, dict):
            continue
        actions = [
            action
            for action in (_action_from_dict(a) for a in value.get("approvals") or [] if isinstance(a, dict))
            if action is not None
        ]
        approvals[int(match.group(1))] = LevelState(
            is_completed=bool(value.get("isCompleted")), actions=actions
        )
    return approvals


def _overall_status(raw: Any) -> OverallStatus:
    try:
        return OverallStatus(str(raw or OverallStatus.PENDING.value).lower())
    except ValueError:
        return OverallStatus.PENDING


def request_from_document(
    tenant_id: str, process_type: str, doc: StoredDocument
) -> ApprovableRequest:
    data = doc.data
    return ApprovableRequest(
        id=doc.id,
        tenant_id=tenant_id,
        process_type=process_type,
        submitter_id=str(
            data.get("submitter_id") or data.get("submittedBy") or data.get("requesterId") or ""
        ),
        created_at=parse_timestamp(data.get("created_at") or data.get("createdAt")) or utc_now(),
        overall_status=_overall_status(data.get("status")),
        approvals=_approvals_from_dict(data.get("approvalStatus") or {}),
        department=data.get("department") if isinstance(data.get("department"), str) else None,
        revision=int(data.get("revision") or 1),
        payload=dict(data.get("payload") or {}),
        updated_at=parse_timestamp(data.get("updated_at")),
        version=doc.version,
    )


def request_to_document(request: ApprovableRequest) -> dict[str, Any]:
    return {
        "id": request.id,
        "tenant_id": request.tenant_id,
        "process_type": request.process_type,
        "submitter_id": request.submitter_id,
        "department": request.department,
        "created_at": request.created_at,
        "updated_at": request.updated_at or utc_now(),
        "status": request.overall_status.value,
        "revision": request.revision,
        "payload": request.payload,
        "approvalStatus": {
            f"level{index}": {
                "isCompleted": state.is_completed,
                "approvals": [
                    {
                        "approverId": a.actor_id,
                        "status": _STORED_DECISION[a.decision],
                        "approvedAt": a.timestamp,
                        "comments": a.comment,
                        "revision": a.revision,
                    }
                    for a in state.actions
                ],
            }
            for index, state in sorted(request.approvals.items())
        },
    }


class RequestRepository:
    """Requests under companies/{tenant}/{collection for process type}/{id}."""

    def __init__(self, store: IDocumentStore) -> None:
        self._store = store

    async def get(
        self, tenant_id: str, process_type: str, request_id: str
    ) -> ApprovableRequest | None:
        doc = await self._store.read(request_path(tenant_id, process_type, request_id))
        if doc is None:
            return None
        return request_from_document(tenant_id, process_type, doc)

    async def create(self, request: ApprovableRequest) -> ApprovableRequest:
        """Raises DocumentAlreadyExistsException if the id is taken."""
        version = await self._store.create(
            request_path(request.tenant_id, request.process_type, request.id),
            request_to_document(request),
        )
        created = request.copy()
        created.version = version
        return created

    async def save(self, request: ApprovableRequest) -> ApprovableRequest:
        """Conditional on request.version; raises VersionConflictException when stale."""
        path = request_path(request.tenant_id, request.process_type, request.id)
        document = request_to_document(request)
        if request.version:
            version = await self._store.write_if_unchanged(path, document, request.version)
        else:
            version = await self._store.write(path, document)
        saved = request.copy()
        saved.version = version
        return saved

    async def delete(self, tenant_id: str, process_type: str, request_id: str) -> None:
        await self._store.delete(request_path(tenant_id, process_type, request_id))

    async def subscribe(
        self,
        tenant_id: str,
        process_type: str,
        request_id: str,
        on_change: Callable[[ApprovableRequest | None], Awaitable[None]],
    ) -> Unsubscribe:
        async def deliver(doc: StoredDocument | None) -> None:
            await on_change(
                request_from_document(tenant_id, process_type, doc) if doc else None
            )

        return await self._store.subscribe(
            request_path(tenant_id, process_type, request_id), deliver
        )
