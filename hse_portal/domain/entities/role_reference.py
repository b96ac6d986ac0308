"""Approver role references.

A role reference says *who* may approve at a level without naming a concrete
person: a specific user, anyone holding a job title (function), or the
submitter's manager N levels up. Stored flows encode them as strings
("user_<id>", "function_<title>", "L+<n>"); parse_role_reference is the only
place those strings are interpreted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from hse_portal.domain.exceptions import ValidationException

_USER_PREFIX = "user_"
_FUNCTION_PREFIX = "function_"
_HIERARCHY_PATTERN = re.compile(r"^L\+(\d+)$")


@dataclass(frozen=True)
class DirectUserRef:
    """A specific user, by id."""

    user_id: str

    def encode(self) -> str:
        return f"{_USER_PREFIX}{self.user_id}"

    def describe(self) -> str:
        return "Direct Approver"


@dataclass(frozen=True)
class FunctionRef:
    """Any active user whose job title matches the key (case-insensitive)."""

    job_title_key: str

    def encode(self) -> str:
        return f"{_FUNCTION_PREFIX}{self.job_title_key}"

    def describe(self) -> str:
        return f"Function: {self.job_title_key}"

    def matches(self, job_title: str | None) -> bool:
        """Return True if the given job title satisfies this function."""
        if not job_title:
            return False
        return job_title.strip().casefold() == self.job_title_key.strip().casefold()


@dataclass(frozen=True)
class HierarchyRef:
    """The submitter's manager, n levels up the reporting chain."""

    n: int

    def encode(self) -> str:
        return f"L+{self.n}"

    def describe(self) -> str:
        return f"Level +{self.n} Approver"


RoleReference = DirectUserRef | FunctionRef | HierarchyRef


def parse_role_reference(value: str) -> RoleReference:
    """Parse a stored role string into a RoleReference.

    Args:
        value: Encoded role, e.g. "user_abc123", "function_hse_manager", "L+1".

    Returns:
        The matching RoleReference variant.

    Raises:
        ValidationException: If the string matches no known encoding.
    """
    raw = (value or "").strip()
    if raw.startswith(_USER_PREFIX) and len(raw) > len(_USER_PREFIX):
        return DirectUserRef(raw[len(_USER_PREFIX):])
    if raw.startswith(_FUNCTION_PREFIX) and len(raw) > len(_FUNCTION_PREFIX):
        return FunctionRef(raw[len(_FUNCTION_PREFIX):])
    match = _HIERARCHY_PATTERN.match(raw)
    if match:
        n = int(match.group(1))
        if n < 1:
            raise ValidationException(
                f"Hierarchy reference must be at least L+1, got {raw!r}",
                field="role",
            )
        return HierarchyRef(n)
    raise ValidationException(f"Unrecognized approver role: {raw!r}", field="role")
