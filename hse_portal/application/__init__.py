"""Application layer: interfaces, services, use cases.

Depends only on domain and protocol definitions (DIP).
Infrastructure implements the interfaces (document store, repositories, notifications).
"""

from hse_portal.application.interfaces import (
    IDirectoryResolver,
    IDocumentStore,
    IFlowRepository,
    INotificationService,
    INotificationTemplateRenderer,
    IRequestRepository,
    ITaskRepository,
    IUserDirectory,
)
from hse_portal.application.services import (
    ApprovalFanout,
    ApprovalStateMachine,
    DirectoryResolver,
    FlowProjector,
)

__all__ = [
    "ApprovalFanout",
    "ApprovalStateMachine",
    "DirectoryResolver",
    "FlowProjector",
    "IDirectoryResolver",
    "IDocumentStore",
    "IFlowRepository",
    "INotificationService",
    "INotificationTemplateRenderer",
    "IRequestRepository",
    "ITaskRepository",
    "IUserDirectory",
]
