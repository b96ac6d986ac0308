"""Presentation-layer dependency injection (composition root).

Provides FastAPI Depends() for the document store, the current actor and the
approval use cases. All use cases are built from infrastructure
implementations here; routes depend only on these dependencies, not on infra
directly.

The document store comes from app.state (set in lifespan) and is created on
first use when the lifespan did not run (e.g. ASGITransport in tests).
Switch backends via DATABASE_BACKEND in config.
"""

from __future__ import annotations

from functools import lru_cache, partial
from typing import Annotated

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.requests import HTTPConnection

from hse_portal.application.dtos import CurrentActor
from hse_portal.application.interfaces.repositories import IDocumentStore
from hse_portal.application.services import DirectoryResolver
from hse_portal.application.use_cases.approvals import (
    ActOnRequestUseCase,
    ApprovalSideEffects,
    GetFlowUseCase,
    GetRequestApprovalUseCase,
    ResolverFactory,
    ResubmitRequestUseCase,
    SaveFlowUseCase,
    SubmitRequestUseCase,
    WatchRequestApprovalUseCase,
    WithdrawRequestUseCase,
)
from hse_portal.core.config import get_settings
from hse_portal.infrastructure.repositories import (
    FlowRepository,
    RequestRepository,
    TaskRepository,
    UserDirectory,
)
from hse_portal.infrastructure.security.jwt import TokenClaims, verify_token
from hse_portal.infrastructure.services import (
    ApprovalTemplateRenderer,
    LogOnlyNotificationService,
)
from hse_portal.infrastructure.store_factory import DocumentStoreFactory


def get_document_store(connection: HTTPConnection) -> IDocumentStore:
    """Document store from app.state; created lazily if the lifespan did not set one.

    Raises:
        DocumentStoreUnavailableError: Firestore selected but not initialized (503).
    """
    store = getattr(connection.app.state, "document_store", None)
    if store is None:
        store = DocumentStoreFactory.create_document_store()
        connection.app.state.document_store = store
    return store


StoreDep = Annotated[IDocumentStore, Depends(get_document_store)]


def get_tenant_id(connection: HTTPConnection) -> str:
    """Resolve tenant ID from the configured header (X-Tenant-ID by default)."""
    name = get_settings().tenant_header_name
    value = connection.headers.get(name)
    if not value:
        raise HTTPException(
            status_code=400,
            detail=f"Missing required header: {name}",
        )
    return value


# ---- Repositories ----


def get_flow_repo(store: StoreDep) -> FlowRepository:
    return FlowRepository(store)


def get_request_repo(store: StoreDep) -> RequestRepository:
    return RequestRepository(store)


def get_task_repo(store: StoreDep) -> TaskRepository:
    return TaskRepository(store)


def get_user_directory(store: StoreDep) -> UserDirectory:
    return UserDirectory(store, scan_limit=get_settings().directory_scan_limit)


def get_resolver_factory(
    directory: Annotated[UserDirectory, Depends(get_user_directory)],
) -> ResolverFactory:
    """Fresh DirectoryResolver per resolution pass (memoizes directory reads within it)."""
    return partial(DirectoryResolver, directory)


# ---- Current actor ----

_http_bearer = HTTPBearer(auto_error=False)


async def actor_from_token(
    token: str, directory: UserDirectory
) -> tuple[TokenClaims, CurrentActor] | None:
    """Verify a bearer token and load its user; None when invalid, unknown or inactive."""
    try:
        claims = verify_token(token)
    except ValueError:
        return None
    if not claims.tenant_id:
        return None
    user = await directory.get_user(claims.tenant_id, claims.user_id)
    if user is None or not user.is_active:
        return None
    return claims, CurrentActor(
        id=user.id,
        tenant_id=claims.tenant_id,
        display_name=user.name,
        job_title=user.job_title,
        department=user.department,
        is_admin=claims.is_admin,
    )


async def get_current_actor_optional(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_http_bearer)],
    directory: Annotated[UserDirectory, Depends(get_user_directory)],
) -> CurrentActor | None:
    """Return current actor from JWT if present; else None."""
    if not credentials:
        return None
    resolved = await actor_from_token(credentials.credentials, directory)
    return resolved[1] if resolved else None


async def get_current_actor(
    current_actor: Annotated[CurrentActor | None, Depends(get_current_actor_optional)],
    tenant_id: Annotated[str, Depends(get_tenant_id)],
) -> CurrentActor:
    """Return current actor from JWT; 401 if missing or invalid, 403 for another tenant."""
    if current_actor is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    if current_actor.tenant_id != tenant_id:
        raise HTTPException(status_code=403, detail="Forbidden")
    return current_actor


async def require_admin(
    current_actor: Annotated[CurrentActor, Depends(get_current_actor)],
) -> CurrentActor:
    if not current_actor.is_admin:
        raise HTTPException(status_code=403, detail="Administrator role required")
    return current_actor


# ---- Use cases ----


@lru_cache
def _template_renderer() -> ApprovalTemplateRenderer:
    return ApprovalTemplateRenderer()


def get_side_effects(
    task_repo: Annotated[TaskRepository, Depends(get_task_repo)],
) -> ApprovalSideEffects:
    return ApprovalSideEffects(
        task_repo, LogOnlyNotificationService(), _template_renderer()
    )


def get_submit_request_use_case(
    flow_repo: Annotated[FlowRepository, Depends(get_flow_repo)],
    request_repo: Annotated[RequestRepository, Depends(get_request_repo)],
    side_effects: Annotated[ApprovalSideEffects, Depends(get_side_effects)],
    resolver_factory: Annotated[ResolverFactory, Depends(get_resolver_factory)],
) -> SubmitRequestUseCase:
    return SubmitRequestUseCase(
        flow_repo,
        request_repo,
        side_effects,
        resolver_factory,
        default_due_days=get_settings().default_due_days,
    )


def get_act_on_request_use_case(
    flow_repo: Annotated[FlowRepository, Depends(get_flow_repo)],
    request_repo: Annotated[RequestRepository, Depends(get_request_repo)],
    side_effects: Annotated[ApprovalSideEffects, Depends(get_side_effects)],
    resolver_factory: Annotated[ResolverFactory, Depends(get_resolver_factory)],
) -> ActOnRequestUseCase:
    settings = get_settings()
    return ActOnRequestUseCase(
        flow_repo,
        request_repo,
        side_effects,
        resolver_factory,
        max_attempts=settings.approval_write_max_attempts,
        default_due_days=settings.default_due_days,
    )


def get_resubmit_request_use_case(
    flow_repo: Annotated[FlowRepository, Depends(get_flow_repo)],
    request_repo: Annotated[RequestRepository, Depends(get_request_repo)],
    side_effects: Annotated[ApprovalSideEffects, Depends(get_side_effects)],
    resolver_factory: Annotated[ResolverFactory, Depends(get_resolver_factory)],
) -> ResubmitRequestUseCase:
    return ResubmitRequestUseCase(
        flow_repo,
        request_repo,
        side_effects,
        resolver_factory,
        default_due_days=get_settings().default_due_days,
    )


def get_withdraw_request_use_case(
    request_repo: Annotated[RequestRepository, Depends(get_request_repo)],
    task_repo: Annotated[TaskRepository, Depends(get_task_repo)],
) -> WithdrawRequestUseCase:
    return WithdrawRequestUseCase(request_repo, task_repo)


def get_request_approval_use_case(
    flow_repo: Annotated[FlowRepository, Depends(get_flow_repo)],
    request_repo: Annotated[RequestRepository, Depends(get_request_repo)],
    resolver_factory: Annotated[ResolverFactory, Depends(get_resolver_factory)],
) -> GetRequestApprovalUseCase:
    return GetRequestApprovalUseCase(flow_repo, request_repo, resolver_factory)


def get_watch_request_approval_use_case(
    request_repo: Annotated[RequestRepository, Depends(get_request_repo)],
    viewer: Annotated[GetRequestApprovalUseCase, Depends(get_request_approval_use_case)],
) -> WatchRequestApprovalUseCase:
    return WatchRequestApprovalUseCase(request_repo, viewer)


def get_flow_use_case(
    flow_repo: Annotated[FlowRepository, Depends(get_flow_repo)],
) -> GetFlowUseCase:
    return GetFlowUseCase(flow_repo)


def get_save_flow_use_case(
    flow_repo: Annotated[FlowRepository, Depends(get_flow_repo)],
) -> SaveFlowUseCase:
    return SaveFlowUseCase(flow_repo)
