"""Approvable request API schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from hse_portal.application.dtos import (
    ActionResult,
    ApprovalTask,
    ApproverView,
    ConfigurationIssue,
    LevelView,
    RequestApprovalView,
    SubmissionResult,
)
from hse_portal.domain.entities import (
    ApprovableRequest,
    ApprovalAction,
    ResolvedApprover,
)
from hse_portal.domain.enums import (
    ConfigurationIssueKind,
    Decision,
    LevelStatus,
    OverallStatus,
    TaskPriority,
    TaskStatus,
)


class RequestSubmitRequest(BaseModel):
    """Request body for submitting a request into its process type's flow."""

    id: str | None = Field(
        default=None,
        min_length=1,
        max_length=128,
        pattern=r"^[^/]+$",
        description="Optional client-chosen id; generated when omitted",
    )
    department: str | None = Field(default=None, max_length=255)
    payload: dict[str, Any] = Field(default_factory=dict)


class ApprovalActionRequest(BaseModel):
    """Approve or reject; level_index defaults to the first level the caller may act on."""

    decision: Decision
    comment: str = Field(default="", max_length=2000)
    level_index: int | None = Field(default=None, ge=1)


class RequestResubmitRequest(BaseModel):
    """Optional replacement form content for the new revision."""

    payload: dict[str, Any] | None = None
    department: str | None = Field(default=None, max_length=255)


class ApprovalActionResponse(BaseModel):
    actor_id: str
    decision: Decision
    timestamp: datetime
    comment: str
    revision: int

    @classmethod
    def from_domain(cls, action: ApprovalAction) -> ApprovalActionResponse:
        return cls(
            actor_id=action.actor_id,
            decision=action.decision,
            timestamp=action.timestamp,
            comment=action.comment,
            revision=action.revision,
        )


class LevelStateResponse(BaseModel):
    """Stored state of one level (all revisions)."""

    level_index: int
    is_completed: bool
    actions: list[ApprovalActionResponse]


class RequestResponse(BaseModel):
    """Approvable request with its stored approval state."""

    id: str
    tenant_id: str
    process_type: str
    submitter_id: str
    department: str | None
    status: OverallStatus
    revision: int
    payload: dict[str, Any]
    created_at: datetime
    updated_at: datetime | None
    approvals: list[LevelStateResponse]

    @classmethod
    def from_domain(cls, request: ApprovableRequest) -> RequestResponse:
        return cls(
            id=request.id,
            tenant_id=request.tenant_id,
            process_type=request.process_type,
            submitter_id=request.submitter_id,
            department=request.department,
            status=request.overall_status,
            revision=request.revision,
            payload=request.payload,
            created_at=request.created_at,
            updated_at=request.updated_at,
            approvals=[
                LevelStateResponse(
                    level_index=index,
                    is_completed=state.is_completed,
                    actions=[ApprovalActionResponse.from_domain(a) for a in state.actions],
                )
                for index, state in sorted(request.approvals.items())
            ],
        )


class ResolvedApproverResponse(BaseModel):
    identity: str
    display_name: str
    title: str
    department: str
    email: str | None = None

    @classmethod
    def from_domain(cls, approver: ResolvedApprover) -> ResolvedApproverResponse:
        return cls(
            identity=approver.identity,
            display_name=approver.display_name,
            title=approver.title,
            department=approver.department,
            email=approver.email,
        )


class ApproverViewResponse(BaseModel):
    """One approver row; identity is null for an unresolved role placeholder."""

    identity: str | None
    display_name: str
    title: str
    department: str
    decision: Decision | None = None
    timestamp: datetime | None = None
    comment: str | None = None

    @classmethod
    def from_domain(cls, view: ApproverView) -> ApproverViewResponse:
        return cls(
            identity=view.identity,
            display_name=view.display_name,
            title=view.title,
            department=view.department,
            decision=view.decision,
            timestamp=view.timestamp,
            comment=view.comment,
        )


class ConfigurationIssueResponse(BaseModel):
    kind: ConfigurationIssueKind
    level_index: int
    role: str
    message: str

    @classmethod
    def from_domain(cls, issue: ConfigurationIssue) -> ConfigurationIssueResponse:
        return cls(
            kind=issue.kind,
            level_index=issue.level_index,
            role=issue.role,
            message=issue.message,
        )


class LevelViewResponse(BaseModel):
    level_index: int
    status: LevelStatus
    approvers: list[ApproverViewResponse]
    issues: list[ConfigurationIssueResponse]

    @classmethod
    def from_domain(cls, view: LevelView) -> LevelViewResponse:
        return cls(
            level_index=view.level_index,
            status=view.status,
            approvers=[ApproverViewResponse.from_domain(a) for a in view.approvers],
            issues=[ConfigurationIssueResponse.from_domain(i) for i in view.issues],
        )


class RequestApprovalResponse(BaseModel):
    """A request's approval flow as seen by the caller."""

    request: RequestResponse
    flow_configured: bool
    levels: list[LevelViewResponse]
    issues: list[ConfigurationIssueResponse]
    actionable_levels: list[int] = Field(
        default_factory=list, description="Levels the caller may act on now"
    )
    can_act: bool = False
    actionable_approvers: list[ResolvedApproverResponse]

    @classmethod
    def from_domain(cls, view: RequestApprovalView) -> RequestApprovalResponse:
        return cls(
            request=RequestResponse.from_domain(view.request),
            flow_configured=view.flow_configured,
            levels=[LevelViewResponse.from_domain(lv) for lv in view.levels],
            issues=[ConfigurationIssueResponse.from_domain(i) for i in view.issues],
            actionable_levels=list(view.actionable_levels),
            can_act=bool(view.actionable_levels),
            actionable_approvers=[
                ResolvedApproverResponse.from_domain(a) for a in view.actionable_approvers
            ],
        )


class TaskResponse(BaseModel):
    id: str
    level_index: int
    assignee_id: str
    title: str
    priority: TaskPriority
    due_at: datetime
    status: TaskStatus
    revision: int

    @classmethod
    def from_domain(cls, task: ApprovalTask) -> TaskResponse:
        return cls(
            id=task.id,
            level_index=task.level_index,
            assignee_id=task.assignee_id,
            title=task.title,
            priority=task.priority,
            due_at=task.due_at,
            status=task.status,
            revision=task.revision,
        )


class SubmissionResponse(BaseModel):
    """Submit / resubmit result. flow_configured=False means the request was auto-approved."""

    request: RequestResponse
    flow_configured: bool
    notified: list[ResolvedApproverResponse]
    tasks: list[TaskResponse]

    @classmethod
    def from_domain(cls, result: SubmissionResult) -> SubmissionResponse:
        return cls(
            request=RequestResponse.from_domain(result.request),
            flow_configured=result.flow_configured,
            notified=[ResolvedApproverResponse.from_domain(a) for a in result.notified],
            tasks=[TaskResponse.from_domain(t) for t in result.tasks],
        )


class ActionResponse(BaseModel):
    request: RequestResponse
    level_index: int
    attempts: int
    notified: list[ResolvedApproverResponse]

    @classmethod
    def from_domain(cls, result: ActionResult) -> ActionResponse:
        return cls(
            request=RequestResponse.from_domain(result.request),
            level_index=result.level_index,
            attempts=result.attempts,
            notified=[ResolvedApproverResponse.from_domain(a) for a in result.notified],
        )


class ActionableApproversResponse(BaseModel):
    """Everyone who may act on the request right now."""

    request_id: str
    status: OverallStatus
    approvers: list[ResolvedApproverResponse]
