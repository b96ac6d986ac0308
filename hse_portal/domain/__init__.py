"""Domain layer: entities, enums, and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from hse_portal.domain.entities import (
    FLOW_NOT_CONFIGURED,
    ApprovableRequest,
    ApprovalAction,
    DirectoryUser,
    FlowDefinition,
    Level,
    LevelState,
    ResolvedApprover,
    RoleReference,
)
from hse_portal.domain.enums import (
    ApprovalPolicy,
    CompletionRule,
    Decision,
    LevelStatus,
    OverallStatus,
)
from hse_portal.domain.exceptions import (
    ApprovalConflictException,
    HsePortalException,
    InvalidFlowDefinitionException,
    ResourceNotFoundException,
    UnauthorizedActionException,
    ValidationException,
)

__all__ = [
    "FLOW_NOT_CONFIGURED",
    "ApprovableRequest",
    "ApprovalAction",
    "ApprovalConflictException",
    "ApprovalPolicy",
    "CompletionRule",
    "Decision",
    "DirectoryUser",
    "FlowDefinition",
    "HsePortalException",
    "InvalidFlowDefinitionException",
    "Level",
    "LevelState",
    "LevelStatus",
    "OverallStatus",
    "ResolvedApprover",
    "ResourceNotFoundException",
    "RoleReference",
    "UnauthorizedActionException",
    "ValidationException",
]
