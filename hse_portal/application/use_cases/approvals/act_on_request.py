"""Act on request use case: approve or reject one level under optimistic concurrency.

Read (with version) -> validate and apply -> write only if unchanged. When
another writer got in between, re-read and re-validate: parallel approvers of
the same level both succeed, while an action the rival made invalid (level
completed, request rejected) becomes ApprovalConflictException.
"""

from __future__ import annotations

from hse_portal.application.dtos.approval import ActionResult
from hse_portal.application.interfaces.repositories import (
    IFlowRepository,
    IRequestRepository,
)
from hse_portal.application.use_cases.approvals._common import (
    ApprovalEngine,
    ApprovalSideEffects,
    ResolverFactory,
    configured,
)
from hse_portal.domain.entities import (
    ApprovableRequest,
    FlowDefinition,
    ResolvedApprover,
)
from hse_portal.domain.enums import Decision
from hse_portal.domain.exceptions import (
    ApprovalConflictException,
    ResourceNotFoundException,
    UnauthorizedActionException,
    VersionConflictException,
)
from hse_portal.shared.telemetry import add_span_event, traced
from hse_portal.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class ActOnRequestUseCase:
    """Records one approve/reject and propagates tasks and notifications."""

    def __init__(
        self,
        flow_repo: IFlowRepository,
        request_repo: IRequestRepository,
        side_effects: ApprovalSideEffects,
        resolver_factory: ResolverFactory,
        *,
        max_attempts: int = 3,
        default_due_days: int = 3,
    ) -> None:
        self._flow_repo = flow_repo
        self._request_repo = request_repo
        self._side_effects = side_effects
        self._resolver_factory = resolver_factory
        self._max_attempts = max(1, max_attempts)
        self._default_due_days = default_due_days

    @traced("approvals.act")
    async def execute(
        self,
        *,
        tenant_id: str,
        process_type: str,
        request_id: str,
        actor_id: str,
        decision: Decision,
        comment: str = "",
        level_index: int | None = None,
    ) -> ActionResult:
        """Apply the actor's decision and persist it.

        Args:
            tenant_id: Tenant id.
            process_type: Process type key of the request.
            request_id: Request id.
            actor_id: Acting user.
            decision: approve or reject.
            comment: Optional comment stored with the action.
            level_index: Target level; when omitted, the first level the actor may act on
                (chosen once; a retry never moves the decision to another level).

        Returns:
            Updated request, the level acted on, and anyone newly notified.

        Raises:
            ResourceNotFoundException: If the request does not exist.
            UnauthorizedActionException: If the actor may not act (nothing is written).
            ApprovalConflictException: If concurrent writes made the action invalid
                or kept winning the race.
            ValidationException: If the flow has no such level.
        """
        target = level_index
        for attempt in range(1, self._max_attempts + 1):
            request = await self._request_repo.get(tenant_id, process_type, request_id)
            if request is None:
                raise ResourceNotFoundException("request", request_id)
            flow = configured(await self._flow_repo.get_flow(tenant_id, process_type))
            engine = ApprovalEngine.build(
                self._resolver_factory(tenant_id),
                default_due_days=self._default_due_days,
            )

            try:
                if flow is None:
                    raise UnauthorizedActionException(
                        actor_id=actor_id,
                        request_id=request_id,
                        level_index=target,
                        reason="no approval flow is configured for this process type",
                    )
                if target is None:
                    target = await self._pick_level(engine, actor_id, flow, request)
                updated = await engine.state_machine.apply_action(
                    actor_id, target, decision, comment, flow, request
                )
            except UnauthorizedActionException:
                if attempt == 1:
                    raise
                # Valid before the lost race, invalid now.
                raise ApprovalConflictException(request_id, target) from None

            try:
                saved = await self._request_repo.save(updated)
            except VersionConflictException:
                logger.info(
                    "Concurrent update on request %s (attempt %s/%s); retrying",
                    request_id,
                    attempt,
                    self._max_attempts,
                )
                add_span_event("approval.write_conflict", {"attempt": attempt})
                continue

            logger.info(
                "Request %s level %s: %s by %s -> %s",
                request_id,
                target,
                decision.value,
                actor_id,
                saved.overall_status.value,
            )
            notified = await self._after_write(engine, flow, saved, actor_id, target)
            return ActionResult(
                request=saved, level_index=target, attempts=attempt, notified=notified
            )

        raise ApprovalConflictException(request_id, target)

    async def _pick_level(
        self,
        engine: ApprovalEngine,
        actor_id: str,
        flow: FlowDefinition,
        request: ApprovableRequest,
    ) -> int:
        levels = await engine.state_machine.actionable_levels(actor_id, flow, request)
        if not levels:
            raise UnauthorizedActionException(
                actor_id=actor_id,
                request_id=request.id,
                level_index=None,
                reason="actor has no level to act on",
            )
        return levels[0]

    async def _after_write(
        self,
        engine: ApprovalEngine,
        flow: FlowDefinition,
        request: ApprovableRequest,
        actor_id: str,
        level_index: int,
    ) -> list[ResolvedApprover]:
        side_effects = self._side_effects
        await side_effects.close_tasks(
            request, completed_by=actor_id, level_index=level_index
        )
        if request.overall_status.is_terminal:
            await side_effects.close_tasks(request)
            return await side_effects.announce_outcome(engine, request)
        if request.level_state(level_index).is_completed:
            await side_effects.close_tasks(request, level_index=level_index)
        return await side_effects.assign(engine, flow, request)
