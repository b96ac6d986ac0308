"""Approval flow API schemas.

Levels use the same shape the settings page stores:
{"level": 1, "approvers": [{"value": "function_hse_manager", "text": "HSE Manager"}]}.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from hse_portal.domain.entities import (
    FlowDefinition,
    FlowNotConfigured,
    Level,
    RoleReference,
    parse_role_reference,
)
from hse_portal.domain.enums import ApprovalPolicy, CompletionRule


class FlowApprover(BaseModel):
    """One approver role of a level: encoded role plus its display label."""

    value: str = Field(..., min_length=1, description="user_<id>, function_<title> or L+<n>")
    text: str = Field(default="", max_length=255)


class FlowLevel(BaseModel):
    level: int = Field(..., ge=1)
    approvers: list[FlowApprover] = Field(..., min_length=1)


class FlowUpsertRequest(BaseModel):
    """Request body for creating or replacing a process type's flow."""

    approval_order: ApprovalPolicy = ApprovalPolicy.SEQUENTIAL
    completion_rule: CompletionRule = CompletionRule.ALL
    due_days: int | None = Field(default=None, ge=0)
    enabled: bool = True
    levels: list[FlowLevel] = Field(..., min_length=1)

    def to_definition(self, process_type: str) -> FlowDefinition:
        """Build the domain flow.

        Raises:
            ValidationException: If an approver role string is not a known encoding.
            InvalidFlowDefinitionException: If levels are not numbered 1..n.
        """
        levels = []
        for item in sorted(self.levels, key=lambda lv: lv.level):
            refs: list[RoleReference] = []
            labels: dict[str, str] = {}
            for approver in item.approvers:
                ref = parse_role_reference(approver.value)
                if ref in refs:
                    continue
                refs.append(ref)
                if approver.text:
                    labels[ref.encode()] = approver.text
            levels.append(Level(index=item.level, role_refs=tuple(refs), labels=labels))
        return FlowDefinition(
            process_type=process_type,
            policy=self.approval_order,
            levels=tuple(levels),
            completion_rule=self.completion_rule,
            enabled=self.enabled,
            due_days=self.due_days,
        )


class FlowResponse(BaseModel):
    """Flow for a process type; configured=False means requests are auto-approved."""

    process_type: str
    configured: bool
    approval_order: ApprovalPolicy | None = None
    completion_rule: CompletionRule | None = None
    due_days: int | None = None
    levels: list[FlowLevel] = Field(default_factory=list)

    @classmethod
    def from_domain(
        cls, process_type: str, flow: FlowDefinition | FlowNotConfigured
    ) -> FlowResponse:
        if not isinstance(flow, FlowDefinition):
            return cls(process_type=process_type, configured=False)
        return cls(
            process_type=process_type,
            configured=True,
            approval_order=flow.policy,
            completion_rule=flow.completion_rule,
            due_days=flow.due_days,
            levels=[_level_schema(level) for level in flow.levels],
        )


def _level_schema(level: Level) -> FlowLevel:
    return FlowLevel(
        level=level.index,
        approvers=[
            FlowApprover(value=ref.encode(), text=level.label_for(ref))
            for ref in level.role_refs
        ],
    )
