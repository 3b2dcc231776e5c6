"""V1 API router -- aggregates all v1 endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from src.crmdesk.api.v1 import (
    companies,
    contacts,
    dashboard,
    deals,
    health,
    invoices,
    notifications,
    tasks,
)

router = APIRouter(prefix="/v1")

router.include_router(health.router)
router.include_router(dashboard.router)
router.include_router(companies.router)
router.include_router(contacts.router)
router.include_router(deals.router)
router.include_router(invoices.router)
router.include_router(tasks.router)
router.include_router(notifications.router)
