"""Results of the approval use cases."""

from __future__ import annotations

from dataclasses import dataclass, field

from hse_portal.application.dtos.projection import LevelView
from hse_portal.application.dtos.resolution import ConfigurationIssue
from hse_portal.application.dtos.task import ApprovalTask
from hse_portal.domain.entities import ApprovableRequest, ResolvedApprover


@dataclass(frozen=True)
class SubmissionResult:
    """Stored request plus who was asked to act (empty when auto-approved)."""

    request: ApprovableRequest
    flow_configured: bool
    notified: list[ResolvedApprover] = field(default_factory=list)
    tasks: list[ApprovalTask] = field(default_factory=list)


@dataclass(frozen=True)
class ActionResult:
    """Request after an accepted action and the level it was recorded at."""

    request: ApprovableRequest
    level_index: int
    attempts: int
    notified: list[ResolvedApprover] = field(default_factory=list)


@dataclass(frozen=True)
class RequestApprovalView:
    """Everything a viewer needs to render and act on a request's approval flow."""

    request: ApprovableRequest
    flow_configured: bool
    levels: list[LevelView] = field(default_factory=list)
    issues: list[ConfigurationIssue] = field(default_factory=list)
    actionable_levels: list[int] = field(default_factory=list)
    actionable_approvers: list[ResolvedApprover] = field(default_factory=list)
