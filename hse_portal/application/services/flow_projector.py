"""Flow projector: display-ready view of a request's approval flow."""

from __future__ import annotations

from hse_portal.application.dtos.projection import ApproverView, LevelView
from hse_portal.application.dtos.resolution import ResolutionContext
from hse_portal.application.services.approval_state_machine import (
    ApprovalStateMachine,
)
from hse_portal.domain.entities import (
    ApprovableRequest,
    ApprovalAction,
    DirectUserRef,
    FlowDefinition,
    Level,
    ResolvedApprover,
)
from hse_portal.domain.entities.approver import NOT_ASSIGNED


def _view(approver: ResolvedApprover, action: ApprovalAction | None) -> ApproverView:
    return ApproverView(
        identity=approver.identity,
        display_name=approver.display_name,
        title=approver.title,
        department=approver.department,
        decision=action.decision if action else None,
        timestamp=action.timestamp if action else None,
        comment=action.comment if action else None,
    )


class FlowProjector:
    """Builds LevelViews from a flow and a request snapshot; never mutates the request."""

    def __init__(self, state_machine: ApprovalStateMachine) -> None:
        self.state_machine = state_machine

    async def project(
        self, flow: FlowDefinition, request: ApprovableRequest
    ) -> list[LevelView]:
        statuses = await self.state_machine.level_statuses(flow, request)
        return [
            LevelView(
                level_index=level.index,
                status=statuses[level.index],
                approvers=await self._approver_rows(level, request),
                issues=await self.state_machine.level_issues(level, request),
            )
            for level in flow.levels
        ]

    async def _approver_rows(
        self, level: Level, request: ApprovableRequest
    ) -> list[ApproverView]:
        resolver = self.state_machine.resolver
        context = ResolutionContext.for_request(request)
        state = request.level_state(level.index)
        rows: list[ApproverView] = []
        seen: set[str] = set()

        for ref in level.role_refs:
            approvers = await resolver.resolve(ref, context)
            if not approvers:
                rows.append(
                    ApproverView(
                        identity=None,
                        display_name=NOT_ASSIGNED,
                        title=level.label_for(ref),
                        department="",
                    )
                )
                continue
            for approver in approvers:
                if approver.identity in seen:
                    continue
                seen.add(approver.identity)
                rows.append(
                    _view(approver, state.action_by(approver.identity, request.revision))
                )

        # Actors recorded in this revision who no longer resolve (directory changed).
        for action in state.current_actions(request.revision):
            if action.actor_id in seen:
                continue
            seen.add(action.actor_id)
            found = await resolver.resolve(DirectUserRef(action.actor_id), context)
            actor = found[0] if found else ResolvedApprover(
                identity=action.actor_id, display_name=action.actor_id
            )
            rows.append(_view(actor, action))
        return rows
