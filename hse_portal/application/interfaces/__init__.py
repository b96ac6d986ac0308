"""Application interfaces (ports): repository and service protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from hse_portal.infrastructure or hse_portal.api.
"""

from hse_portal.application.interfaces.repositories import (
    IDocumentStore,
    IFlowRepository,
    IRequestRepository,
    ITaskRepository,
    IUserDirectory,
    OnChange,
    StoredDocument,
    Unsubscribe,
)
from hse_portal.application.interfaces.services import (
    IDirectoryResolver,
    INotificationService,
    INotificationTemplateRenderer,
)

__all__ = [
    "IDirectoryResolver",
    "IDocumentStore",
    "IFlowRepository",
    "INotificationService",
    "INotificationTemplateRenderer",
    "IRequestRepository",
    "ITaskRepository",
    "IUserDirectory",
    "OnChange",
    "StoredDocument",
    "Unsubscribe",
]
