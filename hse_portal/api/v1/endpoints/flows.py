"""Approval flow API: read and replace a tenant's flow for a process type."""

from typing import Annotated

from fastapi import APIRouter, Depends

from hse_portal.api.v1.dependencies import (
    get_current_actor,
    get_flow_use_case,
    get_save_flow_use_case,
    get_tenant_id,
    require_admin,
)
from hse_portal.application.dtos import CurrentActor
from hse_portal.application.use_cases.approvals import (
    GetFlowUseCase,
    SaveFlowUseCase,
)
from hse_portal.domain.entities import FLOW_NOT_CONFIGURED
from hse_portal.schemas.flow import FlowResponse, FlowUpsertRequest

router = APIRouter()


@router.get("/{process_type}", response_model=FlowResponse)
async def get_flow(
    process_type: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    get_flow_uc: Annotated[GetFlowUseCase, Depends(get_flow_use_case)],
    _: Annotated[CurrentActor, Depends(get_current_actor)],
):
    """Tenant flow (or the global default). configured=False when requests auto-approve."""
    flow = await get_flow_uc.execute(tenant_id=tenant_id, process_type=process_type)
    return FlowResponse.from_domain(process_type, flow)


@router.put("/{process_type}", response_model=FlowResponse)
async def save_flow(
    process_type: str,
    body: FlowUpsertRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    save_flow_uc: Annotated[SaveFlowUseCase, Depends(get_save_flow_use_case)],
    _: Annotated[CurrentActor, Depends(require_admin)],
):
    """Create or replace the tenant's flow (administrators only).

    Open requests are evaluated against the new flow on their next read.
    A disabled flow reads back as not configured.
    """
    flow = await save_flow_uc.execute(
        tenant_id=tenant_id, flow=body.to_definition(process_type)
    )
    return FlowResponse.from_domain(process_type, flow if flow.enabled else FLOW_NOT_CONFIGURED)
