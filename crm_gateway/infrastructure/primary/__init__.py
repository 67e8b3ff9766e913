"""Primary CRM REST API client."""

from crm_gateway.infrastructure.primary.crud_client import PrimaryCrudClient

__all__ = ["PrimaryCrudClient"]
