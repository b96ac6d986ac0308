"""Infrastructure services: notification delivery and templates."""

from hse_portal.infrastructure.services.notification_service import (
    LogOnlyNotificationService,
)
from hse_portal.infrastructure.services.template_renderer import (
    ApprovalTemplateRenderer,
)

__all__ = ["ApprovalTemplateRenderer", "LogOnlyNotificationService"]
