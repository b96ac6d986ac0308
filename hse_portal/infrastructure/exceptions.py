"""Infrastructure exceptions for document store operations.

Store errors extend HsePortalException so presentation can map them
to HTTP responses consistently. Store adapters translate them into the
domain's VersionConflictException / DocumentAlreadyExistsException at the
IDocumentStore boundary.
"""

from hse_portal.domain.exceptions import HsePortalException


class DocumentStoreException(HsePortalException):
    """Base exception for document store operations."""


class DocumentExistsError(DocumentStoreException):
    """Create failed: the document id already exists (HTTP 409 ALREADY_EXISTS)."""

    def __init__(self, path: str) -> None:
        super().__init__(
            f"Document already exists: {path}",
            "DOCUMENT_EXISTS",
            {"path": path},
        )


class PreconditionFailedError(DocumentStoreException):
    """Conditional write rejected: the document changed or vanished (FAILED_PRECONDITION)."""

    def __init__(self, path: str) -> None:
        super().__init__(
            f"Precondition failed for document: {path}",
            "PRECONDITION_FAILED",
            {"path": path},
        )


class DocumentStoreUnavailableError(DocumentStoreException):
    """No document store is configured (e.g. Firestore credentials missing)."""

    def __init__(self, backend: str) -> None:
        super().__init__(
            f"Document store '{backend}' is not available",
            "DOCUMENT_STORE_UNAVAILABLE",
            {"backend": backend},
        )
