"""Resubmit request use case: start a new approval revision after changes."""

from __future__ import annotations

from typing import Any

from hse_portal.application.dtos.approval import SubmissionResult
from hse_portal.application.interfaces.repositories import (
    IFlowRepository,
    IRequestRepository,
)
from hse_portal.application.services.approval_state_machine import (
    ApprovalStateMachine,
)
from hse_portal.application.use_cases.approvals._common import (
    ApprovalEngine,
    ApprovalSideEffects,
    ResolverFactory,
    configured,
)
from hse_portal.domain.enums import OverallStatus
from hse_portal.domain.exceptions import (
    ApprovalConflictException,
    ResourceNotFoundException,
    UnauthorizedActionException,
    VersionConflictException,
)
from hse_portal.shared.telemetry import traced
from hse_portal.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class ResubmitRequestUseCase:
    """Resets approval state to pending (keeping the action history) and re-assigns tasks."""

    def __init__(
        self,
        flow_repo: IFlowRepository,
        request_repo: IRequestRepository,
        side_effects: ApprovalSideEffects,
        resolver_factory: ResolverFactory,
        *,
        default_due_days: int = 3,
    ) -> None:
        self._flow_repo = flow_repo
        self._request_repo = request_repo
        self._side_effects = side_effects
        self._resolver_factory = resolver_factory
        self._default_due_days = default_due_days

    @traced("approvals.resubmit")
    async def execute(
        self,
        *,
        tenant_id: str,
        process_type: str,
        request_id: str,
        actor_id: str,
        payload: dict[str, Any] | None = None,
        department: str | None = None,
    ) -> SubmissionResult:
        """Start revision n+1 of the request.

        Only the submitter may resubmit. Prior actions stay in the log as
        history and no longer count toward any level.

        Raises:
            ResourceNotFoundException: If the request does not exist.
            UnauthorizedActionException: If the actor is not the submitter.
            ApprovalConflictException: If the request changed while resubmitting.
        """
        request = await self._request_repo.get(tenant_id, process_type, request_id)
        if request is None:
            raise ResourceNotFoundException("request", request_id)
        if request.submitter_id != actor_id:
            raise UnauthorizedActionException(
                actor_id=actor_id,
                request_id=request_id,
                level_index=None,
                reason="only the submitter may resubmit a request",
            )

        flow = configured(await self._flow_repo.get_flow(tenant_id, process_type))
        updated = ApprovalStateMachine.reset_for_resubmission(request)
        if payload is not None:
            updated.payload = dict(payload)
        if department is not None:
            updated.department = department
        if flow is None:
            updated.overall_status = OverallStatus.APPROVED
        else:
            for level in flow.levels:
                updated.ensure_level_state(level.index)

        try:
            saved = await self._request_repo.save(updated)
        except VersionConflictException:
            raise ApprovalConflictException(request_id) from None
        logger.info("Request %s resubmitted as revision %s", request_id, saved.revision)

        # Tasks of the previous revision no longer apply.
        await self._side_effects.close_tasks(saved)
        if flow is None:
            return SubmissionResult(request=saved, flow_configured=False)
        engine = ApprovalEngine.build(
            self._resolver_factory(tenant_id), default_due_days=self._default_due_days
        )
        notified = await self._side_effects.assign(engine, flow, saved)
        tasks = [
            t
            for t in await self._side_effects.task_repo.list_for_request(tenant_id, saved.id)
            if t.revision == saved.revision
        ]
        return SubmissionResult(
            request=saved, flow_configured=True, notified=notified, tasks=tasks
        )
