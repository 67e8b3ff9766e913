"""Domain exceptions for the gateway.

Raised beneath the entity router (session guard, collection resolver, store
clients) and converted to failed result envelopes there. Presentation maps
any that escape a route to HTTP responses in exception handlers.
"""

from typing import Any


class GatewayException(Exception):
    """Base exception for all gateway errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context.
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
        """Return a JSON-serializable error body."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(GatewayException):
    """Raised when input validation fails (e.g. unknown field or bad page size)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class AuthError(GatewayException):
    """No or invalid secondary-store session, or the auth provider is unreachable."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, "AUTHENTICATION_ERROR")


class NotFoundError(GatewayException):
    """Entity, document or collection cannot be resolved."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'collection', 'document').
            resource_id: The identifier that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class TransportError(GatewayException):
    """Network failure, timeout or unexpected HTTP status against either store."""

    def __init__(
        self, message: str, store: str, status_code: int | None = None
    ) -> None:
        details: dict[str, Any] = {"store": store}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, "TRANSPORT_ERROR", details)
