"""Pydantic request/response schemas for the API."""

from hse_portal.schemas.flow import FlowResponse, FlowUpsertRequest
from hse_portal.schemas.health import HealthResponse
from hse_portal.schemas.request import (
    ActionableApproversResponse,
    ActionResponse,
    ApprovalActionRequest,
    RequestApprovalResponse,
    RequestResubmitRequest,
    RequestSubmitRequest,
    SubmissionResponse,
)

__all__ = [
    "ActionResponse",
    "ActionableApproversResponse",
    "ApprovalActionRequest",
    "FlowResponse",
    "FlowUpsertRequest",
    "HealthResponse",
    "RequestApprovalResponse",
    "RequestResubmitRequest",
    "RequestSubmitRequest",
    "SubmissionResponse",
]
