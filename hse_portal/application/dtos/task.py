"""DTOs for approval tasks (no dependency on the document store)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from hse_portal.domain.enums import TaskPriority, TaskStatus


@dataclass(frozen=True)
class ApprovalTask:
    """Actionable task given to one approver for one level of a request."""

    id: str
    tenant_id: str
    process_type: str
    request_id: str
    level_index: int
    assignee_id: str
    title: str
    priority: TaskPriority
    due_at: datetime
    status: TaskStatus
    created_at: datetime
    revision: int = 1
