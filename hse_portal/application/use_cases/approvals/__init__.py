"""Approval use cases: submit, act, resubmit, withdraw, view, watch, flows."""

from hse_portal.application.use_cases.approvals._common import (
    ApprovalEngine,
    ApprovalSideEffects,
    ResolverFactory,
)
from hse_portal.application.use_cases.approvals.act_on_request import (
    ActOnRequestUseCase,
)
from hse_portal.application.use_cases.approvals.flows import (
    GetFlowUseCase,
    SaveFlowUseCase,
)
from hse_portal.application.use_cases.approvals.get_request_approval import (
    GetRequestApprovalUseCase,
    WatchRequestApprovalUseCase,
)
from hse_portal.application.use_cases.approvals.resubmit_request import (
    ResubmitRequestUseCase,
)
from hse_portal.application.use_cases.approvals.submit_request import (
    SubmitRequestUseCase,
)
from hse_portal.application.use_cases.approvals.withdraw_request import (
    WithdrawRequestUseCase,
)

__all__ = [
    "ActOnRequestUseCase",
    "ApprovalEngine",
    "ApprovalSideEffects",
    "GetFlowUseCase",
    "GetRequestApprovalUseCase",
    "ResolverFactory",
    "ResubmitRequestUseCase",
    "SaveFlowUseCase",
    "SubmitRequestUseCase",
    "WatchRequestApprovalUseCase",
    "WithdrawRequestUseCase",
]
