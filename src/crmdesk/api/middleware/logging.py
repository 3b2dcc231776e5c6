"""Structured logging setup and per-request logging middleware.

Every request gets a request id (the caller's ``X-Request-ID`` when present,
otherwise a fresh UUID). The id is bound into structlog's context variables
for the duration of the request, so events emitted while serving it
(``crm_api.*``, ``board.*``, page services) carry the same ``request_id`` as
the closing ``request_completed`` line.

Console output in development, JSON lines in production.
"""

from __future__ import annotations

import logging
import time
import uuid

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.crmdesk.config import Environment, get_settings

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Polled by load balancers; logged at debug to keep request logs readable.
_QUIET_PATHS = frozenset({"/v1/health"})


def configure_structlog() -> None:
    """Configure stdlib logging and structlog for the current environment."""
    settings = get_settings()
    logging.basicConfig(format="%(message)s", level=settings.LOG_LEVEL)
    # httpx logs one INFO line per CRM call; crm_api.* events already cover them.
    logging.getLogger("httpx").setLevel(logging.WARNING)

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]
    if settings.ENVIRONMENT == Environment.production:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log each request once with status and timing, tagged with its request id."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        structlog.contextvars.bind_contextvars(request_id=request_id)
        start = time.monotonic()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request_error",
                method=request.method,
                path=request.url.path,
                duration_ms=_elapsed_ms(start),
            )
            raise
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers[REQUEST_ID_HEADER] = request_id

        if request.url.path in _QUIET_PATHS and response.status_code < 400:
            log = logger.debug
        elif response.status_code >= 500:
            log = logger.error
        elif response.status_code >= 400:
            log = logger.warning
        else:
            log = logger.info

        log(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=_elapsed_ms(start),
            request_id=request_id,
        )
        return response


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 2)
