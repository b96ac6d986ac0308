"""Approval state machine: level status, overall status, and action validation.

Level status is derived from stored state, never stored:

1. completed and every action of the current revision is an approval: approved
2. any rejection in the current revision: rejected
3. sequential flow and the previous level is not approved: locked
4. some, but fewer than required, approvals: partially-approved
5. otherwise: pending

Required approvals come from resolving the level's role references
(CompletionRule.ALL: every distinct resolved approver; ANY: one). A level that
resolves to nobody stays pending and is reported as a configuration issue, as
is a level whose remaining approvers left the directory after others approved.

All operations are pure functions of the (flow, request) snapshot apart from
directory reads; apply_action returns an updated copy and never persists.
"""

from __future__ import annotations

from hse_portal.application.dtos.resolution import (
    ConfigurationIssue,
    LevelResolution,
    ResolutionContext,
)
from hse_portal.application.interfaces.services import IDirectoryResolver
from hse_portal.domain.entities import (
    ApprovableRequest,
    ApprovalAction,
    FlowDefinition,
    Level,
    LevelState,
)
from hse_portal.domain.enums import (
    ConfigurationIssueKind,
    Decision,
    LevelStatus,
    OverallStatus,
)
from hse_portal.domain.exceptions import UnauthorizedActionException
from hse_portal.shared.utils.datetime import utc_now


class ApprovalStateMachine:
    """Computes and transitions approval state for one flow and request."""

    def __init__(self, resolver: IDirectoryResolver) -> None:
        self.resolver = resolver

    async def resolve_level(
        self, level: Level, request: ApprovableRequest
    ) -> LevelResolution:
        return await self.resolver.resolve_level(
            level, ResolutionContext.for_request(request)
        )

    async def resolve_levels(
        self, flow: FlowDefinition, request: ApprovableRequest
    ) -> list[LevelResolution]:
        """Resolved approvers (and issues) for every level, in level order."""
        return [await self.resolve_level(level, request) for level in flow.levels]

    async def level_statuses(
        self,
        flow: FlowDefinition,
        request: ApprovableRequest,
        *,
        up_to: int | None = None,
    ) -> dict[int, LevelStatus]:
        """Status of each level (1..up_to, or all), keyed by level index."""
        statuses: dict[int, LevelStatus] = {}
        previous: LevelStatus | None = None
        for level in flow.levels:
            if up_to is not None and level.index > up_to:
                break
            previous = await self._status(level, flow, request, previous)
            statuses[level.index] = previous
        return statuses

    async def level_status(
        self, level_index: int, flow: FlowDefinition, request: ApprovableRequest
    ) -> LevelStatus:
        """Derived status of one level.

        Raises:
            ValidationException: If the flow has no such level.
        """
        flow.level(level_index)
        statuses = await self.level_statuses(flow, request, up_to=level_index)
        return statuses[level_index]

    async def _status(
        self,
        level: Level,
        flow: FlowDefinition,
        request: ApprovableRequest,
        previous: LevelStatus | None,
    ) -> LevelStatus:
        state = request.level_state(level.index)
        actions = state.current_actions(request.revision)
        if state.is_completed and all(a.decision == Decision.APPROVE for a in actions):
            return LevelStatus.APPROVED
        if state.has_rejection(request.revision):
            return LevelStatus.REJECTED
        if flow.is_sequential and previous is not None and previous != LevelStatus.APPROVED:
            return LevelStatus.LOCKED
        approvals = state.approve_count(request.revision)
        if approvals > 0:
            resolution = await self.resolve_level(level, request)
            if approvals < resolution.required_count(flow.completion_rule):
                return LevelStatus.PARTIALLY_APPROVED
        return LevelStatus.PENDING

    async def overall_status(
        self, flow: FlowDefinition, request: ApprovableRequest
    ) -> OverallStatus:
        """Recompute the overall status from level statuses.

        Rejected if any level is rejected, approved if every level is approved,
        partially-approved while some level is partially approved, pending
        otherwise (an approved level followed by an untouched one is pending).
        """
        statuses = list((await self.level_statuses(flow, request)).values())
        if LevelStatus.REJECTED in statuses:
            return OverallStatus.REJECTED
        if all(s == LevelStatus.APPROVED for s in statuses):
            return OverallStatus.APPROVED
        if LevelStatus.PARTIALLY_APPROVED in statuses:
            return OverallStatus.PARTIALLY_APPROVED
        return OverallStatus.PENDING

    async def can_act(
        self,
        actor_id: str,
        level_index: int,
        flow: FlowDefinition,
        request: ApprovableRequest,
    ) -> bool:
        """True iff the actor is a resolved approver of an open level and has not acted yet."""
        return await self._refusal(actor_id, level_index, flow, request) is None

    async def _refusal(
        self,
        actor_id: str,
        level_index: int,
        flow: FlowDefinition,
        request: ApprovableRequest,
    ) -> str | None:
        """Return why the actor may not act at the level, or None if they may."""
        if request.overall_status.is_terminal:
            return f"request is already {request.overall_status.value}"
        level = flow.level(level_index)
        status = await self.level_status(level_index, flow, request)
        if status in (LevelStatus.LOCKED, LevelStatus.APPROVED, LevelStatus.REJECTED):
            return f"level {level_index} is {status.value}"
        resolution = await self.resolve_level(level, request)
        if actor_id not in resolution.identities:
            return f"actor is not an approver at level {level_index}"
        if request.level_state(level_index).action_by(actor_id, request.revision):
            return f"actor already acted at level {level_index}"
        return None

    async def apply_action(
        self,
        actor_id: str,
        level_index: int,
        decision: Decision,
        comment: str,
        flow: FlowDefinition,
        request: ApprovableRequest,
    ) -> ApprovableRequest:
        """Validate and apply one approve/reject; return the updated copy.

        The input request is not modified. The caller persists the result.

        Raises:
            UnauthorizedActionException: If the actor may not act at the level.
            ValidationException: If the flow has no such level.
        """
        reason = await self._refusal(actor_id, level_index, flow, request)
        if reason is not None:
            raise UnauthorizedActionException(
                actor_id=actor_id,
                request_id=request.id,
                level_index=level_index,
                reason=reason,
            )

        updated = request.copy()
        now = utc_now()
        state = updated.ensure_level_state(level_index)
        state.actions.append(
            ApprovalAction(
                actor_id=actor_id,
                decision=decision,
                timestamp=now,
                comment=comment or "",
                revision=updated.revision,
            )
        )
        if decision == Decision.REJECT:
            state.is_completed = True
            updated.overall_status = OverallStatus.REJECTED
        else:
            resolution = await self.resolve_level(flow.level(level_index), updated)
            required = resolution.required_count(flow.completion_rule)
            if required and state.approve_count(updated.revision) >= required:
                state.is_completed = True
            updated.overall_status = await self.overall_status(flow, updated)
        updated.updated_at = now
        return updated

    async def actionable_levels(
        self, actor_id: str, flow: FlowDefinition, request: ApprovableRequest
    ) -> list[int]:
        """Levels the actor may act on right now, in level order."""
        return [
            level.index
            for level in flow.levels
            if await self.can_act(actor_id, level.index, flow, request)
        ]

    async def level_issues(
        self, level: Level, request: ApprovableRequest
    ) -> list[ConfigurationIssue]:
        """Role reference issues of one level, plus a stall when nobody is left to act.

        A level stalls when approvals of the current revision are recorded, it is
        not completed, and every approver it still resolves to has already acted
        (the others went inactive or changed role after the first approvals).
        """
        resolution = await self.resolve_level(level, request)
        issues = list(resolution.issues)
        state = request.level_state(level.index)
        revision = request.revision
        if (
            request.overall_status.is_terminal
            or state.is_completed
            or state.has_rejection(revision)
            or state.approve_count(revision) == 0
        ):
            return issues
        waiting = [
            identity
            for identity in resolution.identities
            if state.action_by(identity, revision) is None
        ]
        if not waiting:
            issues.append(
                ConfigurationIssue(
                    kind=ConfigurationIssueKind.STALLED_LEVEL,
                    level_index=level.index,
                    role="",
                    message=(
                        f"Level {level.index} has approvals but no remaining approver "
                        "can complete it; update the flow or the directory"
                    ),
                )
            )
        return issues

    async def configuration_issues(
        self, flow: FlowDefinition, request: ApprovableRequest
    ) -> list[ConfigurationIssue]:
        """Every configuration issue of the flow for this request, in level order."""
        issues: list[ConfigurationIssue] = []
        for level in flow.levels:
            issues.extend(await self.level_issues(level, request))
        return issues

    @staticmethod
    def initialize(
        request: ApprovableRequest, flow: FlowDefinition | None
    ) -> ApprovableRequest:
        """Set the empty approval state of a new request.

        Without a flow (not configured) the request is approved immediately.
        """
        request.revision = max(request.revision, 1)
        if flow is None:
            request.approvals = {}
            request.overall_status = OverallStatus.APPROVED
        else:
            request.approvals = {level.index: LevelState() for level in flow.levels}
            request.overall_status = OverallStatus.PENDING
        return request

    @staticmethod
    def reset_for_resubmission(request: ApprovableRequest) -> ApprovableRequest:
        """Start a new revision: back to pending, completion flags cleared, action log kept."""
        updated = request.copy()
        updated.revision += 1
        updated.overall_status = OverallStatus.PENDING
        for state in updated.approvals.values():
            state.is_completed = False
        updated.updated_at = utc_now()
        return updated
