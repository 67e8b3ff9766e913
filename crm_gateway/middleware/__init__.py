"""HTTP middleware: session id and request id.

Applied in main app. Import and use from crm_gateway.main.
"""

from crm_gateway.middleware.session_id import SessionIDMiddleware

__all__ = ["SessionIDMiddleware"]
