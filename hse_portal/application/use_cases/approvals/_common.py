"""Shared wiring for the approval use cases: per-pass engine and side effects."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from hse_portal.application.dtos.notification import NotificationPayload
from hse_portal.application.dtos.resolution import ResolutionContext
from hse_portal.application.interfaces.repositories import ITaskRepository
from hse_portal.application.interfaces.services import (
    IDirectoryResolver,
    INotificationService,
    INotificationTemplateRenderer,
)
from hse_portal.application.services.approval_fanout import (
    ApprovalFanout,
    task_title,
)
from hse_portal.application.services.approval_state_machine import (
    ApprovalStateMachine,
)
from hse_portal.application.services.flow_projector import FlowProjector
from hse_portal.domain.entities import (
    ApprovableRequest,
    DirectUserRef,
    FlowDefinition,
    FlowNotConfigured,
    ResolvedApprover,
)
from hse_portal.domain.enums import OverallStatus
from hse_portal.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

# tenant_id -> fresh resolver (one per resolution pass).
ResolverFactory = Callable[[str], IDirectoryResolver]


def configured(flow: FlowDefinition | FlowNotConfigured) -> FlowDefinition | None:
    """Return the flow, or None for the not-configured sentinel."""
    return flow if isinstance(flow, FlowDefinition) else None


@dataclass(frozen=True)
class ApprovalEngine:
    """State machine, projector and fan-out sharing one resolver."""

    state_machine: ApprovalStateMachine
    projector: FlowProjector
    fanout: ApprovalFanout

    @classmethod
    def build(
        cls, resolver: IDirectoryResolver, *, default_due_days: int = 3
    ) -> ApprovalEngine:
        state_machine = ApprovalStateMachine(resolver)
        return cls(
            state_machine=state_machine,
            projector=FlowProjector(state_machine),
            fanout=ApprovalFanout(state_machine, default_due_days=default_due_days),
        )


class ApprovalSideEffects:
    """Creates approval tasks and sends notifications after a state change.

    Runs after the request write has committed: failures are logged and
    never undo or fail the approval itself.
    """

    def __init__(
        self,
        task_repo: ITaskRepository,
        notifier: INotificationService,
        renderer: INotificationTemplateRenderer,
    ) -> None:
        self.task_repo = task_repo
        self.notifier = notifier
        self.renderer = renderer

    async def assign(
        self, engine: ApprovalEngine, flow: FlowDefinition, request: ApprovableRequest
    ) -> list[ResolvedApprover]:
        """Create tasks for whoever can act now; notify only newly assigned approvers."""
        try:
            assignments = await engine.fanout.actionable_assignments(flow, request)
            tasks = engine.fanout.build_tasks(flow, request, assignments)
            newly_assigned: list[ResolvedApprover] = []
            for task, (_, approver) in zip(tasks, assignments):
                if await self.task_repo.create_if_absent(task):
                    newly_assigned.append(approver)
        except Exception:
            logger.exception(
                "Task fan-out failed for request %s (%s)", request.id, request.process_type
            )
            return []
        await self.notify("approval_requested", newly_assigned, request)
        return newly_assigned

    async def close_tasks(
        self,
        request: ApprovableRequest,
        *,
        completed_by: str | None = None,
        level_index: int | None = None,
    ) -> None:
        try:
            await self.task_repo.close_for_request(
                request.tenant_id,
                request.id,
                completed_by=completed_by,
                level_index=level_index,
            )
        except Exception:
            logger.exception("Closing tasks failed for request %s", request.id)

    async def announce_outcome(
        self, engine: ApprovalEngine, request: ApprovableRequest
    ) -> list[ResolvedApprover]:
        """Tell the submitter their request was approved or rejected."""
        template_key = (
            "request_approved"
            if request.overall_status == OverallStatus.APPROVED
            else "request_rejected"
        )
        submitter = await engine.state_machine.resolver.resolve(
            DirectUserRef(request.submitter_id), ResolutionContext.for_request(request)
        )
        await self.notify(template_key, submitter, request)
        return submitter

    async def notify(
        self,
        template_key: str,
        recipients: list[ResolvedApprover],
        request: ApprovableRequest,
        **extra: Any,
    ) -> None:
        if not recipients:
            return
        context = {
            "title": task_title(request.process_type, request.payload),
            "process_type": request.process_type,
            "request_id": request.id,
            "status": request.overall_status.value,
            "submitter_id": request.submitter_id,
            "revision": request.revision,
            **extra,
        }
        try:
            subject, body = self.renderer.render(template_key, context)
            await self.notifier.notify(
                recipients,
                NotificationPayload(
                    template_key=template_key,
                    subject=subject,
                    body=body,
                    tenant_id=request.tenant_id,
                    process_type=request.process_type,
                    request_id=request.id,
                    data=context,
                ),
            )
        except Exception:
            logger.exception(
                "Notification %s failed for request %s", template_key, request.id
            )
