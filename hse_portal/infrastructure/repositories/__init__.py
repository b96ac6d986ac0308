"""Repositories over the document store (Firestore or in-memory)."""

from hse_portal.infrastructure.repositories.flow_repo import FlowRepository
from hse_portal.infrastructure.repositories.request_repo import RequestRepository
from hse_portal.infrastructure.repositories.task_repo import TaskRepository
from hse_portal.infrastructure.repositories.user_directory import UserDirectory

__all__ = [
    "FlowRepository",
    "RequestRepository",
    "TaskRepository",
    "UserDirectory",
]
