"""Approval notifications: log-only sender (no email subsystem configured)."""

from __future__ import annotations

import logging

from hse_portal.application.dtos.notification import NotificationPayload
from hse_portal.domain.entities import ResolvedApprover
from hse_portal.shared.telemetry.logging import get_logger
from hse_portal.shared.utils.datetime import utc_now

logger = get_logger(__name__)


class LogOnlyNotificationService:
    """INotificationService implementation that logs instead of sending email.

    Use when no email delivery is configured. Production can swap in an SMTP
    or queue-based implementation.
    """

    async def notify(
        self, recipients: list[ResolvedApprover], payload: NotificationPayload
    ) -> None:
        """Log the notification; no actual email sent."""
        subject_preview = (payload.subject or "")[:80]
        if not recipients:
            logger.info(
                "Approval notify: no recipients, skipping send (subject=%r)",
                subject_preview,
            )
            return
        logger.info(
            "Approval notify [%s] request %s: would send to %d recipients (subject=%r)",
            payload.template_key,
            payload.request_id,
            len(recipients),
            subject_preview,
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Approval notify recipients: %s (at %s)",
                [r.email or r.identity for r in recipients],
                utc_now().isoformat(),
            )
        logger.debug("Approval notify body (first 500 chars): %s", (payload.body or "")[:500])
