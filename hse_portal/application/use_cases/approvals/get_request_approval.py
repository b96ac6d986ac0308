"""View use cases: one-off and live projection of a request's approval flow."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from hse_portal.application.dtos.approval import RequestApprovalView
from hse_portal.application.interfaces.repositories import (
    IFlowRepository,
    IRequestRepository,
    Unsubscribe,
)
from hse_portal.application.use_cases.approvals._common import (
    ApprovalEngine,
    ResolverFactory,
    configured,
)
from hse_portal.domain.entities import ApprovableRequest
from hse_portal.domain.exceptions import ResourceNotFoundException
from hse_portal.shared.telemetry import traced
from hse_portal.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class GetRequestApprovalUseCase:
    """Projects a request for a viewer: level views, issues, what the viewer can do."""

    def __init__(
        self,
        flow_repo: IFlowRepository,
        request_repo: IRequestRepository,
        resolver_factory: ResolverFactory,
    ) -> None:
        self._flow_repo = flow_repo
        self._request_repo = request_repo
        self._resolver_factory = resolver_factory

    @traced("approvals.view")
    async def execute(
        self,
        *,
        tenant_id: str,
        process_type: str,
        request_id: str,
        viewer_id: str | None = None,
    ) -> RequestApprovalView:
        """Raises ResourceNotFoundException if the request does not exist."""
        request = await self._request_repo.get(tenant_id, process_type, request_id)
        if request is None:
            raise ResourceNotFoundException("request", request_id)
        return await self.build_view(request, viewer_id)

    async def build_view(
        self, request: ApprovableRequest, viewer_id: str | None
    ) -> RequestApprovalView:
        """Project a request snapshot (already read) with a fresh resolver."""
        flow = configured(
            await self._flow_repo.get_flow(request.tenant_id, request.process_type)
        )
        if flow is None:
            return RequestApprovalView(request=request, flow_configured=False)

        engine = ApprovalEngine.build(self._resolver_factory(request.tenant_id))
        actionable_levels = (
            await engine.state_machine.actionable_levels(viewer_id, flow, request)
            if viewer_id
            else []
        )
        return RequestApprovalView(
            request=request,
            flow_configured=True,
            levels=await engine.projector.project(flow, request),
            issues=await engine.state_machine.configuration_issues(flow, request),
            actionable_levels=actionable_levels,
            actionable_approvers=await engine.fanout.actionable_approvers(flow, request),
        )


class WatchRequestApprovalUseCase:
    """Re-projects a request whenever the store delivers a new snapshot."""

    def __init__(
        self, request_repo: IRequestRepository, viewer: GetRequestApprovalUseCase
    ) -> None:
        self._request_repo = request_repo
        self._viewer = viewer

    async def execute(
        self,
        *,
        tenant_id: str,
        process_type: str,
        request_id: str,
        on_update: Callable[[RequestApprovalView | None], Awaitable[None]],
        viewer_id: str | None = None,
    ) -> Unsubscribe:
        """Subscribe; on_update gets a fresh view per change, or None once the request is gone.

        Returns:
            Async callable that stops the subscription.
        """

        async def on_change(request: ApprovableRequest | None) -> None:
            if request is None:
                await on_update(None)
                return
            await on_update(await self._viewer.build_view(request, viewer_id))

        logger.debug("Watching request %s (%s)", request_id, process_type)
        return await self._request_repo.subscribe(
            tenant_id, process_type, request_id, on_change
        )
