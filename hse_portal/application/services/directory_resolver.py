"""Directory resolver: role references to concrete approvers (IDirectoryResolver).

One instance serves one resolution pass (typically one API request or one
use-case run) and memoizes directory reads for its lifetime. Directory read
failures are logged and treated as empty results; nothing here raises.
"""

from __future__ import annotations

from hse_portal.application.dtos.resolution import (
    ConfigurationIssue,
    LevelResolution,
    ResolutionContext,
)
from hse_portal.application.interfaces.repositories import IUserDirectory
from hse_portal.domain.entities import (
    DirectoryUser,
    DirectUserRef,
    FunctionRef,
    HierarchyRef,
    Level,
    ResolvedApprover,
    RoleReference,
)
from hse_portal.domain.enums import ConfigurationIssueKind
from hse_portal.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

_MISSING = object()


class DirectoryResolver:
    """Resolves DirectUser / Function / Hierarchy references against a tenant directory."""

    def __init__(self, directory: IUserDirectory, tenant_id: str) -> None:
        self.directory = directory
        self.tenant_id = tenant_id
        self._users: dict[str, DirectoryUser | None] = {}
        self._active_users: list[DirectoryUser] | None = None
        self._levels: dict[tuple[Level, ResolutionContext], LevelResolution] = {}

    async def resolve(
        self, role_ref: RoleReference, context: ResolutionContext
    ) -> list[ResolvedApprover]:
        """Return zero or more approvers for role_ref (empty means unassigned, not an error)."""
        if isinstance(role_ref, DirectUserRef):
            user = await self._get_user(role_ref.user_id)
            return [ResolvedApprover.from_user(user)] if user else []
        if isinstance(role_ref, FunctionRef):
            return await self._resolve_function(role_ref, context.request_department)
        if isinstance(role_ref, HierarchyRef):
            return await self._resolve_hierarchy(role_ref, context.submitter_id)
        raise TypeError(f"Unknown role reference: {role_ref!r}")

    async def resolve_level(
        self, level: Level, context: ResolutionContext
    ) -> LevelResolution:
        """Resolve every role reference of a level; dedupe by identity; report issues.

        Order follows the level's role references, first occurrence wins.
        """
        key = (level, context)
        cached = self._levels.get(key)
        if cached is not None:
            return cached

        approvers: dict[str, ResolvedApprover] = {}
        issues: list[ConfigurationIssue] = []
        for ref in level.role_refs:
            resolved = await self.resolve(ref, context)
            issue = self._issue_for(level, ref, resolved)
            if issue is not None:
                logger.warning(
                    "Approval flow configuration issue (tenant %s, level %s, role %s): %s",
                    self.tenant_id,
                    level.index,
                    issue.role,
                    issue.message,
                )
                issues.append(issue)
            for approver in resolved:
                approvers.setdefault(approver.identity, approver)

        resolution = LevelResolution(
            level_index=level.index,
            approvers=tuple(approvers.values()),
            issues=tuple(issues),
        )
        self._levels[key] = resolution
        return resolution

    def _issue_for(
        self, level: Level, ref: RoleReference, resolved: list[ResolvedApprover]
    ) -> ConfigurationIssue | None:
        label = level.label_for(ref)
        if isinstance(ref, HierarchyRef) and ref.n > 1:
            return ConfigurationIssue(
                kind=ConfigurationIssueKind.UNSUPPORTED_HIERARCHY_DEPTH,
                level_index=level.index,
                role=ref.encode(),
                message=(
                    f"'{label}' refers to the manager {ref.n} levels up; only the "
                    "direct line manager (L+1) is supported"
                ),
            )
        if not resolved:
            return ConfigurationIssue(
                kind=ConfigurationIssueKind.UNRESOLVED_APPROVER,
                level_index=level.index,
                role=ref.encode(),
                message=f"'{label}' does not match any active user",
            )
        return None

    async def _resolve_function(
        self, ref: FunctionRef, department: str | None
    ) -> list[ResolvedApprover]:
        matches = [u for u in await self._get_active_users() if ref.matches(u.job_title)]
        if department:
            wanted = department.strip().casefold()
            in_department = [
                u for u in matches if (u.department or "").strip().casefold() == wanted
            ]
            # Single fallback: all departments.
            if in_department:
                matches = in_department
        return [ResolvedApprover.from_user(u) for u in matches]

    async def _resolve_hierarchy(
        self, ref: HierarchyRef, submitter_id: str
    ) -> list[ResolvedApprover]:
        if ref.n != 1:
            return []
        submitter = await self._get_user(submitter_id)
        if submitter is None or not submitter.line_manager_id:
            return []
        manager = await self._get_user(submitter.line_manager_id)
        return [ResolvedApprover.from_user(manager)] if manager else []

    async def _get_user(self, user_id: str) -> DirectoryUser | None:
        cached = self._users.get(user_id, _MISSING)
        if cached is not _MISSING:
            return cached  # type: ignore[return-value]
        try:
            user = await self.directory.get_user(self.tenant_id, user_id)
        except Exception:
            logger.warning(
                "Directory lookup failed for user %s (tenant %s)",
                user_id,
                self.tenant_id,
                exc_info=True,
            )
            user = None
        self._users[user_id] = user
        return user

    async def _get_active_users(self) -> list[DirectoryUser]:
        if self._active_users is None:
            try:
                users = await self.directory.list_active_users(self.tenant_id)
            except Exception:
                logger.warning(
                    "Directory scan failed for tenant %s", self.tenant_id, exc_info=True
                )
                users = []
            self._active_users = users
            for user in users:
                self._users.setdefault(user.id, user)
        return self._active_users
