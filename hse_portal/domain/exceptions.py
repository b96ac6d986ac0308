"""Domain exceptions for the HSE portal.

Defines domain-level exceptions that represent business rule violations.
These exceptions are independent of infrastructure concerns. Presentation
layer maps them to HTTP responses in exception handlers.
"""

from typing import Any


class HsePortalException(Exception):
    """Base exception for all HSE portal errors.

    All custom exceptions should inherit from this class to allow
    consistent error handling and logging. Presentation layer maps
    these to HTTP responses using message, error_code, and details.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON body used by the API error handler."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(HsePortalException):
    """Raised when input validation fails (e.g. invalid format or range)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class InvalidFlowDefinitionException(HsePortalException):
    """Raised when a flow definition breaks its structural invariants."""

    def __init__(self, process_type: str, reason: str) -> None:
        """Initialize with the process type and what is wrong.

        Args:
            process_type: Flow's process type key (e.g. 'access').
            reason: Human-readable reason (e.g. 'level 2 has no approvers').
        """
        super().__init__(
            f"Invalid approval flow for '{process_type}': {reason}",
            "INVALID_FLOW_DEFINITION",
            {"process_type": process_type, "reason": reason},
        )


class UnauthorizedActionException(HsePortalException):
    """Raised when an actor tries to act on a level they cannot act on.

    No state is mutated when this is raised.
    """

    def __init__(
        self,
        actor_id: str,
        request_id: str,
        level_index: int | None,
        reason: str,
    ) -> None:
        """Initialize with actor, request, level, and reason.

        Args:
            actor_id: User who attempted the action.
            request_id: Request the action targeted.
            level_index: Target level (None when no level could be chosen).
            reason: Machine-friendly reason (e.g. 'level_locked', 'already_acted').
        """
        super().__init__(
            "You are not allowed to act on this approval level",
            "UNAUTHORIZED_ACTION",
            {
                "actor_id": actor_id,
                "request_id": request_id,
                "level_index": level_index,
                "reason": reason,
            },
        )


class ApprovalConflictException(HsePortalException):
    """Raised when a concurrent write won the race for the same request.

    Callers re-read and retry, or surface "please retry" to the user.
    """

    def __init__(self, request_id: str, level_index: int | None = None) -> None:
        """Initialize with the contested request (and level when known)."""
        super().__init__(
            "Approval state was updated by another request; retry.",
            "APPROVAL_CONFLICT",
            {"request_id": request_id, "level_index": level_index},
        )


class RequestClosedException(HsePortalException):
    """Raised when withdrawing or resubmitting a request in a state that forbids it."""

    def __init__(self, request_id: str, status: str, operation: str) -> None:
        super().__init__(
            f"Cannot {operation} request {request_id} in status '{status}'",
            "REQUEST_CLOSED",
            {"request_id": request_id, "status": status, "operation": operation},
        )


class ResourceNotFoundException(HsePortalException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'request', 'flow').
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class VersionConflictException(HsePortalException):
    """Raised when a conditional write finds the document changed since it was read (optimistic lock)."""

    def __init__(self, path: str, expected_version: str | None) -> None:
        super().__init__(
            "Document was updated by another request; retry.",
            "VERSION_CONFLICT",
            {"path": path, "expected_version": expected_version},
        )


class DocumentAlreadyExistsException(HsePortalException):
    """Raised when creating a document whose path is already taken."""

    def __init__(self, path: str) -> None:
        super().__init__(
            f"Document already exists: {path}",
            "DOCUMENT_ALREADY_EXISTS",
            {"path": path},
        )
