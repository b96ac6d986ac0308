"""Application services: approver resolution, approval state, projection, fan-out."""

from hse_portal.application.services.approval_fanout import ApprovalFanout
from hse_portal.application.services.approval_state_machine import (
    ApprovalStateMachine,
)
from hse_portal.application.services.directory_resolver import DirectoryResolver
from hse_portal.application.services.flow_projector import FlowProjector

__all__ = [
    "ApprovalFanout",
    "ApprovalStateMachine",
    "DirectoryResolver",
    "FlowProjector",
]
