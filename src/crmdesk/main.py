"""FastAPI application factory.

Creates the app with logging middleware, CORS, the CRM API error handler,
lifespan wiring of the page services, and the v1 API router.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.crmdesk.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.crmdesk.api.v1.router import router as v1_router
from src.crmdesk.board.reconciler import BoardReconciler
from src.crmdesk.client.api import CRMApiClient, CRMApiError
from src.crmdesk.config import Settings, get_settings
from src.crmdesk.notifications import Notifier
from src.crmdesk.services.companies import CompanyDirectory
from src.crmdesk.services.contacts import ContactDirectory
from src.crmdesk.services.dashboard import Dashboard
from src.crmdesk.services.invoices import InvoiceLedger
from src.crmdesk.services.tasks import TaskList

logger = structlog.get_logger(__name__)


def init_services(app: FastAPI, client: CRMApiClient, settings: Settings) -> None:
    """Attach one instance of every page service to ``app.state``."""
    notifier = Notifier(backlog=settings.NOTIFICATION_BACKLOG)

    app.state.api_client = client
    app.state.notifier = notifier
    app.state.board = BoardReconciler(client, notifier)
    app.state.companies = CompanyDirectory(client, notifier)
    app.state.contacts = ContactDirectory(client, notifier)
    app.state.invoices = InvoiceLedger(client, notifier)
    app.state.tasks = TaskList(client, notifier)
    app.state.dashboard = Dashboard(client, notifier, currency_symbol=settings.CURRENCY_SYMBOL)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: configure logging and wire services on startup."""
    settings = get_settings()
    configure_structlog()

    if getattr(app.state, "api_client", None) is None:
        client = CRMApiClient(settings.CRM_API_BASE_URL, timeout=settings.CRM_API_TIMEOUT)
        init_services(app, client, settings)
    logger.info(
        "startup.services_initialized",
        crm_api=app.state.api_client.base_url,
        environment=settings.ENVIRONMENT.value,
    )

    yield

    board = getattr(app.state, "board", None)
    if board is not None and board.pending():
        # Let in-flight column moves finish so their outcome is logged.
        await board.settle()
    logger.info("shutdown.complete")


async def crm_api_error_handler(request: Request, exc: CRMApiError) -> JSONResponse:
    """Report a failed CRM API call as 502 Bad Gateway."""
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={
            "detail": str(exc),
            "resource": exc.resource,
            "upstream_status": exc.status_code,
        },
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="CRM Desk",
        version="0.1.0",
        description="Pages for companies, contacts, deals, invoices and tasks over a CRM REST API",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)

    # CORS middleware
    if settings.CORS_ALLOWED_ORIGINS == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware (outermost -- logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(CRMApiError, crm_api_error_handler)

    app.include_router(v1_router)

    return app


# Module-level app for uvicorn
app = create_app()
