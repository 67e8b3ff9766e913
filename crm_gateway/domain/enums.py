"""Domain enumerations for the gateway."""

from enum import Enum


class Backend(str, Enum):
    """Store that serves an entity."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


class AuthMethod(str, Enum):
    """How the current browser session authenticated.

    At most one method is active per session. Set once on initial load by
    the auth context merger.
    """

    MANUAL = "manual"
    TOKEN = "token"
    EMAIL = "email"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid method values as strings."""
        return [method.value for method in cls]


class FailurePolicy(str, Enum):
    """What the entity router does with a store failure.

    SWALLOW: return an empty failed envelope and log a warning (reads).
    SURFACE: return a failed envelope with a message and log an error (writes).
    """

    SWALLOW = "swallow"
    SURFACE = "surface"
