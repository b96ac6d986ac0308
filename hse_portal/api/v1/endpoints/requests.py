"""Approvable request API: thin routes delegating to the approval use cases.

All routes are tenant-scoped (tenant header) and act as the bearer-token user.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, WebSocket, WebSocketDisconnect

from hse_portal.api.v1.dependencies import (
    actor_from_token,
    get_act_on_request_use_case,
    get_current_actor,
    get_request_approval_use_case,
    get_resubmit_request_use_case,
    get_submit_request_use_case,
    get_tenant_id,
    get_user_directory,
    get_watch_request_approval_use_case,
    get_withdraw_request_use_case,
)
from hse_portal.application.dtos import CurrentActor, RequestApprovalView
from hse_portal.application.use_cases.approvals import (
    ActOnRequestUseCase,
    GetRequestApprovalUseCase,
    ResubmitRequestUseCase,
    SubmitRequestUseCase,
    WatchRequestApprovalUseCase,
    WithdrawRequestUseCase,
)
from hse_portal.infrastructure.repositories import UserDirectory
from hse_portal.schemas.request import (
    ActionableApproversResponse,
    ActionResponse,
    ApprovalActionRequest,
    RequestApprovalResponse,
    RequestResubmitRequest,
    RequestSubmitRequest,
    ResolvedApproverResponse,
    SubmissionResponse,
)
from hse_portal.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/{process_type}", response_model=SubmissionResponse, status_code=201)
async def submit_request(
    process_type: str,
    body: RequestSubmitRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    current_actor: Annotated[CurrentActor, Depends(get_current_actor)],
    submit_uc: Annotated[SubmitRequestUseCase, Depends(get_submit_request_use_case)],
):
    """Submit a request. Without a configured flow it is approved immediately.

    The department defaults to the submitter's own department.
    """
    result = await submit_uc.execute(
        tenant_id=tenant_id,
        process_type=process_type,
        submitter_id=current_actor.id,
        department=body.department or current_actor.department,
        payload=body.payload,
        request_id=body.id,
    )
    return SubmissionResponse.from_domain(result)


@router.get("/{process_type}/{request_id}", response_model=RequestApprovalResponse)
async def get_request_approval(
    process_type: str,
    request_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    current_actor: Annotated[CurrentActor, Depends(get_current_actor)],
    view_uc: Annotated[GetRequestApprovalUseCase, Depends(get_request_approval_use_case)],
):
    """Level-by-level projection, configuration issues, and the levels the caller may act on."""
    view = await view_uc.execute(
        tenant_id=tenant_id,
        process_type=process_type,
        request_id=request_id,
        viewer_id=current_actor.id,
    )
    return RequestApprovalResponse.from_domain(view)


@router.post("/{process_type}/{request_id}/actions", response_model=ActionResponse)
async def act_on_request(
    process_type: str,
    request_id: str,
    body: ApprovalActionRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    current_actor: Annotated[CurrentActor, Depends(get_current_actor)],
    act_uc: Annotated[ActOnRequestUseCase, Depends(get_act_on_request_use_case)],
):
    """Approve or reject as the caller. 403 if the caller may not act, 409 on a lost race."""
    result = await act_uc.execute(
        tenant_id=tenant_id,
        process_type=process_type,
        request_id=request_id,
        actor_id=current_actor.id,
        decision=body.decision,
        comment=body.comment,
        level_index=body.level_index,
    )
    return ActionResponse.from_domain(result)


@router.post(
    "/{process_type}/{request_id}/resubmit", response_model=SubmissionResponse
)
async def resubmit_request(
    process_type: str,
    request_id: str,
    body: RequestResubmitRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    current_actor: Annotated[CurrentActor, Depends(get_current_actor)],
    resubmit_uc: Annotated[
        ResubmitRequestUseCase, Depends(get_resubmit_request_use_case)
    ],
):
    """Start a new revision (submitter only); earlier actions are kept as history."""
    result = await resubmit_uc.execute(
        tenant_id=tenant_id,
        process_type=process_type,
        request_id=request_id,
        actor_id=current_actor.id,
        payload=body.payload,
        department=body.department,
    )
    return SubmissionResponse.from_domain(result)


@router.delete("/{process_type}/{request_id}", status_code=204)
async def withdraw_request(
    process_type: str,
    request_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    current_actor: Annotated[CurrentActor, Depends(get_current_actor)],
    withdraw_uc: Annotated[
        WithdrawRequestUseCase, Depends(get_withdraw_request_use_case)
    ],
):
    """Withdraw (delete) an open request and its tasks. 409 once approved or rejected."""
    await withdraw_uc.execute(
        tenant_id=tenant_id,
        process_type=process_type,
        request_id=request_id,
        actor=current_actor,
    )
    return Response(status_code=204)


@router.get(
    "/{process_type}/{request_id}/actionable-approvers",
    response_model=ActionableApproversResponse,
)
async def get_actionable_approvers(
    process_type: str,
    request_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    current_actor: Annotated[CurrentActor, Depends(get_current_actor)],
    view_uc: Annotated[GetRequestApprovalUseCase, Depends(get_request_approval_use_case)],
):
    """Everyone who may act right now (empty once the request is approved or rejected)."""
    view = await view_uc.execute(
        tenant_id=tenant_id,
        process_type=process_type,
        request_id=request_id,
        viewer_id=current_actor.id,
    )
    return ActionableApproversResponse(
        request_id=view.request.id,
        status=view.request.overall_status,
        approvers=[
            ResolvedApproverResponse.from_domain(a) for a in view.actionable_approvers
        ],
    )


async def _reject_websocket(websocket: WebSocket, reason: str, code: int = 1008) -> None:
    """Accept then immediately close with code/reason so client gets a proper close frame."""
    await websocket.accept()
    await websocket.close(code=code, reason=reason)


@router.websocket("/{process_type}/{request_id}/watch")
async def watch_request_approval(
    websocket: WebSocket,
    process_type: str,
    request_id: str,
    directory: Annotated[UserDirectory, Depends(get_user_directory)],
    watch_uc: Annotated[
        WatchRequestApprovalUseCase, Depends(get_watch_request_approval_use_case)
    ],
):
    """Push a fresh approval view on every change to the request.

    Token must be provided as query param (?token=<jwt>); the tenant comes
    from the token. Sends {"deleted": true} once the request is withdrawn.
    """
    token = websocket.query_params.get("token")
    if not token:
        await _reject_websocket(websocket, "Missing token")
        return
    resolved = await actor_from_token(token, directory)
    if resolved is None:
        await _reject_websocket(websocket, "Invalid token")
        return
    _, actor = resolved
    await websocket.accept()

    async def on_update(view: RequestApprovalView | None) -> None:
        if view is None:
            await websocket.send_json({"request_id": request_id, "deleted": True})
            return
        await websocket.send_json(
            RequestApprovalResponse.from_domain(view).model_dump(mode="json")
        )

    unsubscribe = await watch_uc.execute(
        tenant_id=actor.tenant_id,
        process_type=process_type,
        request_id=request_id,
        on_update=on_update,
        viewer_id=actor.id,
    )
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Watcher of request %s disconnected", request_id)
    finally:
        await unsubscribe()
