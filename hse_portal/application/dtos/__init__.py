"""Application DTOs (no store dependency)."""

from hse_portal.application.dtos.actor import CurrentActor
from hse_portal.application.dtos.approval import (
    ActionResult,
    RequestApprovalView,
    SubmissionResult,
)
from hse_portal.application.dtos.notification import NotificationPayload
from hse_portal.application.dtos.projection import ApproverView, LevelView
from hse_portal.application.dtos.resolution import (
    ConfigurationIssue,
    LevelResolution,
    ResolutionContext,
)
from hse_portal.application.dtos.task import ApprovalTask

__all__ = [
    "ActionResult",
    "ApprovalTask",
    "ApproverView",
    "ConfigurationIssue",
    "CurrentActor",
    "LevelResolution",
    "LevelView",
    "NotificationPayload",
    "RequestApprovalView",
    "ResolutionContext",
    "SubmissionResult",
]
