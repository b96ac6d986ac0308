"""Approval fan-out: who must be notified / given a task, and the tasks themselves.

Only computes targets from the current snapshot; dispatch and re-notification
control belong to the caller (task ids are deterministic per revision, level
and assignee, so storing the same task twice is a no-op).
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from hse_portal.application.dtos.task import ApprovalTask
from hse_portal.application.services.approval_state_machine import (
    ApprovalStateMachine,
)
from hse_portal.domain.entities import (
    ApprovableRequest,
    FlowDefinition,
    ResolvedApprover,
)
from hse_portal.domain.enums import LevelStatus, TaskPriority, TaskStatus
from hse_portal.shared.utils.datetime import utc_now

HIGH_PRIORITY_TYPES = frozenset({"incident", "permit"})
MEDIUM_PRIORITY_TYPES = frozenset({"training", "inspection", "access"})
URGENT_KEYWORDS = ("emergency", "urgent", "critical", "immediate", "asap", "high priority")
_URGENCY_TEXT_FIELDS = ("description", "purpose", "comments", "notes", "incidentType", "riskLevel")


def _text(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if isinstance(value, dict):
        value = value.get("label") or value.get("text")
    return str(value).strip() if value not in (None, "") else ""


def task_priority(process_type: str, payload: dict[str, Any]) -> TaskPriority:
    """High for incidents/permits or urgent wording, medium for training/inspection/access, else low."""
    kind = process_type.lower()
    if kind in HIGH_PRIORITY_TYPES:
        return TaskPriority.HIGH
    text = " ".join(_text(payload, key) for key in _URGENCY_TEXT_FIELDS).lower()
    if any(keyword in text for keyword in URGENT_KEYWORDS):
        return TaskPriority.HIGH
    if _text(payload, "priority").lower() in ("high", "urgent", "critical"):
        return TaskPriority.HIGH
    if _text(payload, "riskLevel").lower() in ("high", "critical"):
        return TaskPriority.HIGH
    if kind in MEDIUM_PRIORITY_TYPES:
        return TaskPriority.MEDIUM
    return TaskPriority.LOW


def task_title(process_type: str, payload: dict[str, Any]) -> str:
    """Human-readable task title from the process type and form fields."""

    def field(*keys: str, default: str) -> str:
        for key in keys:
            value = _text(payload, key)
            if value:
                return value
        return default

    titles = {
        "training": lambda: "Training Approval: "
        + field("trainingTitle", "trainingType", default="Training Request"),
        "access": lambda: field("purpose", default="Access Request"),
        "incident": lambda: "Incident Review: "
        + field("incidentType", default="Safety Incident")
        + " - "
        + field("location", default="Workplace"),
        "inspection": lambda: "Inspection Approval: "
        + field("inspectionType", default="Safety Inspection")
        + " - "
        + field("area", default="Facility"),
        "removal": lambda: "Property Removal: "
        + field("itemDescription", default="Company Property")
        + " - "
        + field("removalReason", default="Request"),
        "permit": lambda: "Work Permit: "
        + field("workType", default="Work Authorization")
        + " - "
        + field("location", default="Site"),
        "fleet": lambda: "Fleet Request: "
        + field("vehicle", "vehicleType", default="Vehicle Request"),
        "company_creation": lambda: "Company Registration: "
        + field("companyName", "name", default="New Company"),
    }
    build = titles.get(process_type)
    if build is not None:
        return build()
    return f"{process_type.replace('_', ' ').capitalize()} Approval Required"


def task_id(request: ApprovableRequest, level_index: int, assignee_id: str) -> str:
    """Deterministic id: one task per request revision, level and assignee."""
    safe_assignee = assignee_id.replace("/", "_")
    return f"{request.id}_r{request.revision}_l{level_index}_{safe_assignee}"


class ApprovalFanout:
    """Computes actionable approvers and builds their approval tasks."""

    def __init__(
        self, state_machine: ApprovalStateMachine, *, default_due_days: int = 3
    ) -> None:
        self.state_machine = state_machine
        self.default_due_days = default_due_days

    async def actionable_assignments(
        self, flow: FlowDefinition, request: ApprovableRequest
    ) -> list[tuple[int, ResolvedApprover]]:
        """(level index, approver) pairs, deduplicated by identity (earliest level wins)."""
        if request.overall_status.is_terminal:
            return []
        statuses = await self.state_machine.level_statuses(flow, request)
        open_statuses = (LevelStatus.PENDING, LevelStatus.PARTIALLY_APPROVED)
        if flow.is_sequential:
            targets = [
                level
                for level in flow.levels
                if statuses[level.index] in open_statuses
            ][:1]
        else:
            targets = [
                level for level in flow.levels if not statuses[level.index].is_closed
            ]

        assignments: list[tuple[int, ResolvedApprover]] = []
        seen: set[str] = set()
        for level in targets:
            state = request.level_state(level.index)
            resolution = await self.state_machine.resolve_level(level, request)
            for approver in resolution.approvers:
                if approver.identity in seen:
                    continue
                if state.action_by(approver.identity, request.revision):
                    continue
                seen.add(approver.identity)
                assignments.append((level.index, approver))
        return assignments

    async def actionable_approvers(
        self, flow: FlowDefinition, request: ApprovableRequest
    ) -> list[ResolvedApprover]:
        """Approvers who can act now, ordered by level, each identity once."""
        return [a for _, a in await self.actionable_assignments(flow, request)]

    def due_date(self, flow: FlowDefinition, start: datetime) -> datetime:
        days = flow.due_days if flow.due_days else self.default_due_days
        return start + timedelta(days=days)

    def build_tasks(
        self,
        flow: FlowDefinition,
        request: ApprovableRequest,
        assignments: list[tuple[int, ResolvedApprover]],
        *,
        now: datetime | None = None,
    ) -> list[ApprovalTask]:
        """One pending task per assignment."""
        created_at = now or utc_now()
        title = task_title(request.process_type, request.payload)
        priority = task_priority(request.process_type, request.payload)
        due_at = self.due_date(flow, created_at)
        return [
            ApprovalTask(
                id=task_id(request, level_index, approver.identity),
                tenant_id=request.tenant_id,
                process_type=request.process_type,
                request_id=request.id,
                level_index=level_index,
                assignee_id=approver.identity,
                title=title,
                priority=priority,
                due_at=due_at,
                status=TaskStatus.PENDING,
                created_at=created_at,
                revision=request.revision,
            )
            for level_index, approver in assignments
        ]
