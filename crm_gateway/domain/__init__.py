"""Domain layer: enums and exceptions.

No dependencies on infrastructure or presentation.
"""

from crm_gateway.domain.enums import AuthMethod, Backend, FailurePolicy
from crm_gateway.domain.exceptions import (
    AuthError,
    GatewayException,
    NotFoundError,
    TransportError,
    ValidationException,
)

__all__ = [
    "AuthMethod",
    "Backend",
    "FailurePolicy",
    "AuthError",
    "GatewayException",
    "NotFoundError",
    "TransportError",
    "ValidationException",
]
