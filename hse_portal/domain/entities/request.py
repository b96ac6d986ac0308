"""Approvable request aggregate.

Any submission that goes through an approval flow (access request, company
registration, fleet request, property removal, ...). The approval engine
only touches the approval-related fields; the form content lives in payload.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from hse_portal.domain.enums import Decision, OverallStatus


@dataclass
class ApprovalAction:
    """A single approve/reject recorded by an approver.

    revision is the submission revision the action belongs to; actions from
    earlier revisions are kept as history after a resubmission.
    """

    actor_id: str
    decision: Decision
    timestamp: datetime
    comment: str = ""
    revision: int = 1


@dataclass
class LevelState:
    """Stored state of one level: completion flag plus the action log."""

    is_completed: bool = False
    actions: list[ApprovalAction] = field(default_factory=list)

    def current_actions(self, revision: int) -> list[ApprovalAction]:
        """Actions recorded for the given submission revision, in order."""
        return [a for a in self.actions if a.revision == revision]

    def approve_count(self, revision: int) -> int:
        return sum(
            1 for a in self.current_actions(revision) if a.decision == Decision.APPROVE
        )

    def has_rejection(self, revision: int) -> bool:
        return any(
            a.decision == Decision.REJECT for a in self.current_actions(revision)
        )

    def action_by(self, actor_id: str, revision: int) -> ApprovalAction | None:
        """Return the actor's action in this revision, if any."""
        for action in self.current_actions(revision):
            if action.actor_id == actor_id:
                return action
        return None


@dataclass
class ApprovableRequest:
    """A submitted request and its approval state.

    version is the store version the snapshot was read at (used for
    optimistic writes); it is not part of the stored document.
    """

    id: str
    tenant_id: str
    process_type: str
    submitter_id: str
    created_at: datetime
    overall_status: OverallStatus = OverallStatus.PENDING
    approvals: dict[int, LevelState] = field(default_factory=dict)
    department: str | None = None
    revision: int = 1
    payload: dict[str, Any] = field(default_factory=dict)
    updated_at: datetime | None = None
    version: str | None = None

    def level_state(self, level_index: int) -> LevelState:
        """Return the stored state for a level (an empty state if none; does not mutate)."""
        return self.approvals.get(level_index) or LevelState()

    def ensure_level_state(self, level_index: int) -> LevelState:
        """Return the stored state for a level, creating it if missing."""
        return self.approvals.setdefault(level_index, LevelState())

    def copy(self) -> ApprovableRequest:
        """Deep copy (approval state and payload are independent of the original)."""
        return copy.deepcopy(self)
