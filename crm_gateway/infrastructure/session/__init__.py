"""Browser-session scoped storage."""

from crm_gateway.infrastructure.session.storage import InMemorySessionStorage, SessionState

__all__ = ["InMemorySessionStorage", "SessionState"]
