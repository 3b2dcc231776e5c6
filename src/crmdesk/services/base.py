"""Shared behaviour of the list pages (companies, contacts, invoices, tasks).

Every list page works the same way: it holds the last list fetched from the
API, validates form input before sending anything, and refetches the whole
list after each create, update or delete instead of merging locally. A failed
request leaves the previous list in place and pushes one error notification.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable
from typing import Any

import structlog

from src.crmdesk.client.api import CRMApiClient, CRMApiError
from src.crmdesk.notifications import Notifier

logger = structlog.get_logger(__name__)


class ListPage(ABC):
    """Base class for pages backed by one API collection.

    Subclasses set ``noun`` and ``plural`` (used in log events and messages)
    and implement ``_fetch``.

    Args:
        client: CRM API client.
        notifier: Receives user-visible failure messages.
    """

    noun: str = "record"
    plural: str = "records"

    def __init__(self, client: CRMApiClient, notifier: Notifier) -> None:
        self._client = client
        self._notifier = notifier
        self._items: list[Any] = []

    @property
    def items(self) -> list[Any]:
        return list(self._items)

    @abstractmethod
    async def _fetch(self) -> list[Any]:
        """Fetch the full collection from the API."""
        ...

    async def refresh(self) -> list[Any]:
        """Reload the collection; on failure the previous list is kept."""
        items = await self._call(self._fetch(), f"Failed to load {self.plural}")
        self._items = items
        logger.info(f"{self.plural}.refreshed", count=len(items))
        return self.items

    async def _call(self, request: Awaitable[Any], failure_message: str) -> Any:
        """Await one API call, reporting a failure once before re-raising."""
        try:
            return await request
        except CRMApiError as exc:
            logger.warning(
                f"{self.plural}.request_failed",
                resource=exc.resource,
                status_code=exc.status_code,
            )
            self._notifier.error(failure_message)
            raise

    async def _mutate_and_refresh(self, request: Awaitable[Any], failure_message: str) -> list[Any]:
        await self._call(request, failure_message)
        return await self.refresh()
