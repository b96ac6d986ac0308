"""Domain enumerations for approval flows.

Enums represent fixed sets of domain values (policy, decisions, statuses).
Values match what is stored in the document database.
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class ApprovalPolicy(_ValuesMixin, str, Enum):
    """Ordering policy across the levels of a flow."""

    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


class CompletionRule(_ValuesMixin, str, Enum):
    """How many resolved approvers of a level must approve to complete it."""

    ALL = "all"
    ANY = "any"


class Decision(_ValuesMixin, str, Enum):
    """Decision recorded by an approver."""

    APPROVE = "approve"
    REJECT = "reject"


class LevelStatus(_ValuesMixin, str, Enum):
    """Derived status of one approval level (never stored)."""

    LOCKED = "locked"
    PENDING = "pending"
    PARTIALLY_APPROVED = "partially-approved"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_closed(self) -> bool:
        """Return True when no further action is accepted at this level."""
        return self in (LevelStatus.APPROVED, LevelStatus.REJECTED)


class OverallStatus(_ValuesMixin, str, Enum):
    """Overall status of an approvable request."""

    PENDING = "pending"
    PARTIALLY_APPROVED = "partially-approved"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        """Return True for approved and rejected."""
        return self in (OverallStatus.APPROVED, OverallStatus.REJECTED)


class ConfigurationIssueKind(_ValuesMixin, str, Enum):
    """Flow configuration problems surfaced to administrators."""

    UNRESOLVED_APPROVER = "unresolved_approver"
    UNSUPPORTED_HIERARCHY_DEPTH = "unsupported_hierarchy_depth"
    STALLED_LEVEL = "stalled_level"


class TaskStatus(_ValuesMixin, str, Enum):
    """Approval task lifecycle status."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(_ValuesMixin, str, Enum):
    """Approval task priority."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
