"""Domain entities and aggregates.

Pure domain models; no persistence concerns.
"""

from hse_portal.domain.entities.approver import DirectoryUser, ResolvedApprover
from hse_portal.domain.entities.flow import (
    FLOW_NOT_CONFIGURED,
    FlowDefinition,
    FlowNotConfigured,
    Level,
)
from hse_portal.domain.entities.request import (
    ApprovableRequest,
    ApprovalAction,
    LevelState,
)
from hse_portal.domain.entities.role_reference import (
    DirectUserRef,
    FunctionRef,
    HierarchyRef,
    RoleReference,
    parse_role_reference,
)

__all__ = [
    "ApprovableRequest",
    "ApprovalAction",
    "DirectUserRef",
    "DirectoryUser",
    "FLOW_NOT_CONFIGURED",
    "FlowDefinition",
    "FlowNotConfigured",
    "FunctionRef",
    "HierarchyRef",
    "Level",
    "LevelState",
    "ResolvedApprover",
    "RoleReference",
    "parse_role_reference",
]
