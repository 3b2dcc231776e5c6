"""FastAPI dependency injection for the session-scoped page services.

The app factory stores one instance of each page service on ``app.state``.
These dependencies fetch them for endpoint signatures and answer 503 when a
service was not initialized.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request, status

from src.crmdesk.board.reconciler import BoardReconciler
from src.crmdesk.notifications import Notifier
from src.crmdesk.services.companies import CompanyDirectory
from src.crmdesk.services.contacts import ContactDirectory
from src.crmdesk.services.dashboard import Dashboard
from src.crmdesk.services.invoices import InvoiceLedger
from src.crmdesk.services.tasks import TaskList


def _from_state(request: Request, name: str, label: str) -> Any:
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} not initialized",
        )
    return service


async def get_board(request: Request) -> BoardReconciler:
    return _from_state(request, "board", "Deals board")


async def get_companies(request: Request) -> CompanyDirectory:
    return _from_state(request, "companies", "Companies page")


async def get_contacts(request: Request) -> ContactDirectory:
    return _from_state(request, "contacts", "Contacts page")


async def get_invoices(request: Request) -> InvoiceLedger:
    return _from_state(request, "invoices", "Invoices page")


async def get_tasks(request: Request) -> TaskList:
    return _from_state(request, "tasks", "Tasks page")


async def get_dashboard(request: Request) -> Dashboard:
    return _from_state(request, "dashboard", "Dashboard")


async def get_notifier(request: Request) -> Notifier:
    return _from_state(request, "notifier", "Notifications")
