"""Service interfaces (ports) for the application layer.

Protocols define contracts for application services (DIP).
"""

from __future__ import annotations

from typing import Any, Protocol

from hse_portal.application.dtos.notification import NotificationPayload
from hse_portal.application.dtos.resolution import LevelResolution, ResolutionContext
from hse_portal.domain.entities import Level, ResolvedApprover, RoleReference


class IDirectoryResolver(Protocol):
    """Resolves abstract role references to concrete approvers."""

    async def resolve(
        self, role_ref: RoleReference, context: ResolutionContext
    ) -> list[ResolvedApprover]:
        """Zero or more approvers for one role reference."""

    async def resolve_level(
        self, level: Level, context: ResolutionContext
    ) -> LevelResolution:
        """Distinct approvers of a level plus configuration issues."""


class INotificationService(Protocol):
    """Delivers a rendered notification to approvers (email, in-app, ...)."""

    async def notify(
        self, recipients: list[ResolvedApprover], payload: NotificationPayload
    ) -> None:
        """Send payload to recipients. Empty recipient list is a no-op."""


class INotificationTemplateRenderer(Protocol):
    """Renders (subject, body) for a notification template key."""

    def render(self, template_key: str, context: dict[str, Any]) -> tuple[str, str]:
        """Raise KeyError if the key is unknown."""
