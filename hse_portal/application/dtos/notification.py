"""Notification payload handed to the notification subsystem."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class NotificationPayload:
    """Rendered message plus routing metadata."""

    template_key: str
    subject: str
    body: str
    tenant_id: str
    process_type: str
    request_id: str
    data: dict[str, Any] = field(default_factory=dict)
