"""Flow definition use cases (administrative read and write)."""

from __future__ import annotations

from hse_portal.application.interfaces.repositories import IFlowRepository
from hse_portal.domain.entities import FlowDefinition, FlowNotConfigured
from hse_portal.shared.telemetry import traced


class GetFlowUseCase:
    def __init__(self, flow_repo: IFlowRepository) -> None:
        self._flow_repo = flow_repo

    async def execute(
        self, *, tenant_id: str, process_type: str
    ) -> FlowDefinition | FlowNotConfigured:
        return await self._flow_repo.get_flow(tenant_id, process_type)


class SaveFlowUseCase:
    """Creates or replaces a tenant's approval flow for a process type."""

    def __init__(self, flow_repo: IFlowRepository) -> None:
        self._flow_repo = flow_repo

    @traced("approvals.save_flow")
    async def execute(self, *, tenant_id: str, flow: FlowDefinition) -> FlowDefinition:
        """Flow invariants are checked when the FlowDefinition is built."""
        await self._flow_repo.save_flow(tenant_id, flow)
        return flow
