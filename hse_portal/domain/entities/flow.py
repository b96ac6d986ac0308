"""Approval flow definition entity.

A flow is configured per tenant and process type (e.g. "access", "fleet"):
an ordered list of levels, each listing who may approve, plus the policy
deciding whether levels run in order or independently. Flows are read-only
to the approval engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from hse_portal.domain.entities.role_reference import RoleReference
from hse_portal.domain.enums import ApprovalPolicy, CompletionRule
from hse_portal.domain.exceptions import (
    InvalidFlowDefinitionException,
    ValidationException,
)


class FlowNotConfigured(Enum):
    """Sentinel type: no flow exists for a process type (no approval required)."""

    NOT_CONFIGURED = "not_configured"


FLOW_NOT_CONFIGURED = FlowNotConfigured.NOT_CONFIGURED


@dataclass(frozen=True)
class Level:
    """One approval stage (1-indexed) with its role references.

    labels maps an encoded role reference to the text an administrator gave it
    when configuring the flow (e.g. "HSE Manager").
    """

    index: int
    role_refs: tuple[RoleReference, ...]
    labels: dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    def label_for(self, ref: RoleReference) -> str:
        """Return the configured label for a role reference, or a generic description."""
        return self.labels.get(ref.encode()) or ref.describe()


@dataclass(frozen=True)
class FlowDefinition:
    """Ordered approval levels for a process type."""

    process_type: str
    policy: ApprovalPolicy
    levels: tuple[Level, ...]
    completion_rule: CompletionRule = CompletionRule.ALL
    enabled: bool = True
    due_days: int | None = None

    def __post_init__(self) -> None:
        if not self.levels:
            raise InvalidFlowDefinitionException(
                self.process_type, "flow must have at least one level"
            )
        for expected, level in enumerate(self.levels, start=1):
            if level.index != expected:
                raise InvalidFlowDefinitionException(
                    self.process_type,
                    f"levels must be numbered 1..{len(self.levels)} without gaps "
                    f"(found level {level.index} at position {expected})",
                )
            if not level.role_refs:
                raise InvalidFlowDefinitionException(
                    self.process_type, f"level {level.index} has no approvers"
                )
        if self.due_days is not None and self.due_days < 0:
            raise InvalidFlowDefinitionException(
                self.process_type, "due_days cannot be negative"
            )

    @property
    def is_sequential(self) -> bool:
        return self.policy == ApprovalPolicy.SEQUENTIAL

    @property
    def level_indexes(self) -> list[int]:
        return [level.index for level in self.levels]

    def level(self, index: int) -> Level:
        """Return the level with the given 1-based index.

        Raises:
            ValidationException: If the flow has no such level.
        """
        if 1 <= index <= len(self.levels):
            return self.levels[index - 1]
        raise ValidationException(
            f"Flow '{self.process_type}' has no level {index}", field="level_index"
        )
