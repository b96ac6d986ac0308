"""Display-ready views of a request's approval flow."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from hse_portal.application.dtos.resolution import ConfigurationIssue
from hse_portal.domain.enums import Decision, LevelStatus


@dataclass(frozen=True)
class ApproverView:
    """One approver row: who, and what they did (if anything) in this revision."""

    identity: str | None
    display_name: str
    title: str
    department: str
    decision: Decision | None = None
    timestamp: datetime | None = None
    comment: str | None = None


@dataclass(frozen=True)
class LevelView:
    """One level of the flow as shown to a viewer."""

    level_index: int
    status: LevelStatus
    approvers: list[ApproverView] = field(default_factory=list)
    issues: list[ConfigurationIssue] = field(default_factory=list)
