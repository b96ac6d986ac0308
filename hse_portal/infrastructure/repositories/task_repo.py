"""Approval task repository over IDocumentStore (implements ITaskRepository)."""

from __future__ import annotations

from typing import Any

from hse_portal.application.dtos.task import ApprovalTask
from hse_portal.application.interfaces.repositories import IDocumentStore
from hse_portal.domain.enums import TaskPriority, TaskStatus
from hse_portal.domain.exceptions import DocumentAlreadyExistsException
from hse_portal.infrastructure.firebase.collections import (
    task_path,
    tasks_collection_path,
)
from hse_portal.shared.utils.datetime import parse_timestamp, utc_now


def task_to_document(task: ApprovalTask) -> dict[str, Any]:
    return {
        "id": task.id,
        "tenant_id": task.tenant_id,
        "process_type": task.process_type,
        "request_id": task.request_id,
        "level_index": task.level_index,
        "assignee_id": task.assignee_id,
        "title": task.title,
        "priority": task.priority.value,
        "due_at": task.due_at,
        "status": task.status.value,
        "created_at": task.created_at,
        "revision": task.revision,
        # Browser task list fields.
        "sourceId": task.request_id,
        "sourcePath": task.process_type,
        "assignedTo": task.assignee_id,
    }


def task_from_document(task_id: str, data: dict[str, Any]) -> ApprovalTask:
    return ApprovalTask(
        id=task_id,
        tenant_id=data.get("tenant_id", ""),
        process_type=data.get("process_type", ""),
        request_id=data.get("request_id", ""),
        level_index=int(data.get("level_index") or 1),
        assignee_id=data.get("assignee_id", ""),
        title=data.get("title", ""),
        priority=TaskPriority(data.get("priority") or TaskPriority.LOW.value),
        due_at=parse_timestamp(data.get("due_at")) or utc_now(),
        status=TaskStatus(data.get("status") or TaskStatus.PENDING.value),
        created_at=parse_timestamp(data.get("created_at")) or utc_now(),
        revision=int(data.get("revision") or 1),
    )


class TaskRepository:
    """Tasks under companies/{tenant}/tasks/{task_id}."""

    def __init__(self, store: IDocumentStore) -> None:
        self._store = store

    async def create_if_absent(self, task: ApprovalTask) -> bool:
        try:
            await self._store.create(
                task_path(task.tenant_id, task.id), task_to_document(task)
            )
        except DocumentAlreadyExistsException:
            return False
        return True

    async def list_for_request(
        self, tenant_id: str, request_id: str
    ) -> list[ApprovalTask]:
        docs = await self._store.query(
            tasks_collection_path(tenant_id), "request_id", request_id
        )
        return [task_from_document(doc.id, doc.data) for doc in docs]

    async def close_for_request(
        self,
        tenant_id: str,
        request_id: str,
        *,
        completed_by: str | None = None,
        level_index: int | None = None,
    ) -> int:
        if completed_by is None and level_index is None:
            new_status = TaskStatus.CANCELLED
        else:
            new_status = TaskStatus.COMPLETED
        closed = 0
        for task in await self.list_for_request(tenant_id, request_id):
            if task.status != TaskStatus.PENDING:
                continue
            if completed_by is not None and task.assignee_id != completed_by:
                continue
            if level_index is not None and task.level_index != level_index:
                continue
            await self._store.merge(
                task_path(tenant_id, task.id),
                {"status": new_status.value, "closed_at": utc_now()},
            )
            closed += 1
        return closed

    async def delete_for_request(self, tenant_id: str, request_id: str) -> int:
        tasks = await self.list_for_request(tenant_id, request_id)
        for task in tasks:
            await self._store.delete(task_path(tenant_id, task.id))
        return len(tasks)
