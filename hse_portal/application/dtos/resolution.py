"""DTOs produced while resolving role references to approvers."""

from __future__ import annotations

from dataclasses import dataclass

from hse_portal.domain.entities import ApprovableRequest, ResolvedApprover
from hse_portal.domain.enums import CompletionRule, ConfigurationIssueKind


@dataclass(frozen=True)
class ResolutionContext:
    """Request facts the resolver needs (who submitted, in which department)."""

    submitter_id: str
    request_department: str | None = None

    @classmethod
    def for_request(cls, request: ApprovableRequest) -> ResolutionContext:
        return cls(
            submitter_id=request.submitter_id,
            request_department=request.department,
        )


@dataclass(frozen=True)
class ConfigurationIssue:
    """A flow configuration problem to surface to administrators."""

    kind: ConfigurationIssueKind
    level_index: int
    role: str
    message: str


@dataclass(frozen=True)
class LevelResolution:
    """Concrete approvers of one level (deduplicated by identity) and any issues."""

    level_index: int
    approvers: tuple[ResolvedApprover, ...]
    issues: tuple[ConfigurationIssue, ...] = ()

    @property
    def identities(self) -> frozenset[str]:
        return frozenset(a.identity for a in self.approvers)

    def required_count(self, rule: CompletionRule) -> int:
        """Approvals needed to complete the level.

        ALL: every distinct resolved approver. ANY: one, if anyone resolved.
        Zero means nobody can complete the level.
        """
        if not self.approvers:
            return 0
        if rule == CompletionRule.ANY:
            return 1
        return len(self.approvers)
