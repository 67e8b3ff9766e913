"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. URLs and the search debounce window are validated at
load time.
"""

from functools import lru_cache
from urllib.parse import urlparse

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class Settings(BaseSettings):
    """Gateway settings loaded from environment and .env.

    The primary API is the CRM's own REST backend. The secondary store is the
    hosted document database + account service (Appwrite REST v1) used for
    customers and tickets.
    """

    # App
    app_name: str = "crm-gateway"
    app_version: str = "1.0.0"
    debug: bool = False

    # Primary store (generic CRUD REST API)
    primary_api_url: str = "http://localhost:8888/api/"
    primary_timeout_seconds: float = 30.0

    # Secondary store (document database + auth provider)
    appwrite_endpoint: str = "http://localhost/v1"
    appwrite_project_id: str = ""
    appwrite_database_id: str = ""
    appwrite_timeout_seconds: float = 30.0
    # Used by the session guard when no session exists. Also pre-fills the
    # manual login form after a failed auto-login.
    appwrite_fallback_email: str | None = None
    appwrite_fallback_password: SecretStr | None = None

    # Live search (websocket) debounce window
    search_debounce_ms: int = 500

    # Browser session: header carrying the session id that scopes the auth context
    session_header_name: str = "X-Session-ID"
    # Idle sessions are forgotten after this many seconds; the registry holds
    # at most session_max_entries sessions.
    session_ttl_seconds: int = 8 * 60 * 60
    session_max_entries: int = 10_000

    # CORS
    allowed_origins: str = "http://localhost:3000"

    # Request
    request_id_header: str = "X-Request-ID"

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_endpoints(self) -> "Settings":
        """Validate store endpoints and the debounce window."""
        if not _is_http_url(self.primary_api_url):
            raise ValueError(
                f"PRIMARY_API_URL must be an http(s) URL, got: {self.primary_api_url!r}"
            )
        if not _is_http_url(self.appwrite_endpoint):
            raise ValueError(
                f"APPWRITE_ENDPOINT must be an http(s) URL, got: {self.appwrite_endpoint!r}"
            )
        if self.search_debounce_ms <= 0:
            raise ValueError("SEARCH_DEBOUNCE_MS must be a positive number of milliseconds")
        if self.session_ttl_seconds <= 0 or self.session_max_entries <= 0:
            raise ValueError("SESSION_TTL_SECONDS and SESSION_MAX_ENTRIES must be positive")
        return self

    def fallback_credentials(self) -> tuple[str, str] | None:
        """Return (email, password) when both fallback credentials are configured."""
        if not self.appwrite_fallback_email or not self.appwrite_fallback_password:
            return None
        password = self.appwrite_fallback_password.get_secret_value()
        if not password:
            return None
        return self.appwrite_fallback_email, password


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.
    """
    return Settings()
