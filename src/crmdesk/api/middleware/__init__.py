"""Request middleware for the desk API."""

from src.crmdesk.api.middleware.logging import (
    REQUEST_ID_HEADER,
    LoggingMiddleware,
    configure_structlog,
)

__all__ = ["REQUEST_ID_HEADER", "LoggingMiddleware", "configure_structlog"]
