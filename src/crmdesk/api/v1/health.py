"""Health check endpoint.

Liveness only: the desk holds no connections of its own, and the CRM API is
reached per request.
"""

from __future__ import annotations

from fastapi import APIRouter

from src.crmdesk.config import get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic liveness check."""
    settings = get_settings()
    return {
        "status": "ok",
        "environment": settings.ENVIRONMENT.value,
        "crm_api": settings.CRM_API_BASE_URL,
    }
