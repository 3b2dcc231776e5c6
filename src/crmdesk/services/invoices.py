"""Invoices page: list, create, delete and download invoices.

Invoice numbers are assigned by the API. The amount must be strictly
positive; a zero or negative amount is rejected before anything is sent.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from src.crmdesk.crm.schemas import Invoice, InvoiceCreate
from src.crmdesk.services.base import ListPage

logger = structlog.get_logger(__name__)


class InvoiceLedger(ListPage):
    noun = "invoice"
    plural = "invoices"

    async def _fetch(self) -> list[Invoice]:
        return await self._client.list_invoices()

    async def create(self, fields: InvoiceCreate | Mapping[str, Any]) -> list[Invoice]:
        """Create an invoice for a deal and reload the list.

        Args:
            fields: ``deal`` id and ``amount``; ``date`` defaults to now.

        Raises:
            ValidationError: Missing deal or non-positive amount. Nothing is sent.
            CRMApiError: The create request failed.
        """
        payload = fields if isinstance(fields, InvoiceCreate) else InvoiceCreate.model_validate(fields)
        logger.info("invoices.creating", deal_id=payload.deal, amount=payload.amount)
        return await self._mutate_and_refresh(
            self._client.create_invoice(payload.to_wire()), "Failed to create invoice"
        )

    async def delete(self, invoice_id: str) -> list[Invoice]:
        return await self._mutate_and_refresh(
            self._client.delete_invoice(invoice_id), "Failed to delete invoice"
        )

    async def download(self, invoice_id: str) -> tuple[bytes, str]:
        """Fetch the invoice document rendered by the API."""
        return await self._call(
            self._client.download_invoice(invoice_id), "Failed to download invoice"
        )
