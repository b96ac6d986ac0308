"""Submit request use case: create the request, initialise approval state, fan out."""

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
from hse_portal.domain.entities import ApprovableRequest
from hse_portal.shared.telemetry import traced
from hse_portal.shared.telemetry.logging import get_logger
from hse_portal.shared.utils import generate_cuid, utc_now

logger = get_logger(__name__)


class SubmitRequestUseCase:
    """Creates an approvable request; auto-approves it when no flow is configured."""

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

    @traced("approvals.submit")
    async def execute(
        self,
        *,
        tenant_id: str,
        process_type: str,
        submitter_id: str,
        department: str | None = None,
        payload: dict[str, Any] | None = None,
        request_id: str | None = None,
    ) -> SubmissionResult:
        """Create the request and assign tasks to whoever can act first.

        Args:
            tenant_id: Tenant id.
            process_type: Process type key (e.g. 'access', 'fleet').
            submitter_id: User submitting the request.
            department: Department the request belongs to (scopes function approvers).
            payload: Form content; stored as-is.
            request_id: Optional id; a CUID is generated when omitted.

        Returns:
            Stored request plus notified approvers and created tasks.

        Raises:
            DocumentAlreadyExistsException: If request_id is already taken.
        """
        flow = configured(await self._flow_repo.get_flow(tenant_id, process_type))
        now = utc_now()
        request = ApprovalStateMachine.initialize(
            ApprovableRequest(
                id=request_id or generate_cuid(),
                tenant_id=tenant_id,
                process_type=process_type,
                submitter_id=submitter_id,
                created_at=now,
                department=department,
                payload=dict(payload or {}),
                updated_at=now,
            ),
            flow,
        )
        saved = await self._request_repo.create(request)

        if flow is None:
            logger.info(
                "No approval flow for %s in tenant %s; request %s auto-approved",
                process_type,
                tenant_id,
                saved.id,
            )
            return SubmissionResult(request=saved, flow_configured=False)

        engine = ApprovalEngine.build(
            self._resolver_factory(tenant_id), default_due_days=self._default_due_days
        )
        notified = await self._side_effects.assign(engine, flow, saved)
        tasks = await self._side_effects.task_repo.list_for_request(tenant_id, saved.id)
        return SubmissionResult(
            request=saved, flow_configured=True, notified=notified, tasks=tasks
        )
