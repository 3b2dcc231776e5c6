"""Client for the external CRM REST API."""

from src.crmdesk.client.api import CRMApiClient, CRMApiError

__all__ = ["CRMApiClient", "CRMApiError"]
