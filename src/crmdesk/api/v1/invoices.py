"""REST endpoints for the Invoices page."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from src.crmdesk.api.deps import get_invoices
from src.crmdesk.crm.schemas import Invoice, InvoiceCreate
from src.crmdesk.services.invoices import InvoiceLedger

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("", response_model=list[Invoice])
async def list_invoices(
    refresh: bool = Query(default=True, description="Refetch from the CRM API"),
    ledger: InvoiceLedger = Depends(get_invoices),
) -> list[Invoice]:
    """List generated invoices."""
    if refresh:
        return await ledger.refresh()
    return ledger.items


@router.post("", response_model=list[Invoice], status_code=201)
async def create_invoice(
    body: InvoiceCreate,
    ledger: InvoiceLedger = Depends(get_invoices),
) -> list[Invoice]:
    """Create an invoice for a deal. Amounts must be greater than zero."""
    return await ledger.create(body)


@router.delete("/{invoice_id}", response_model=list[Invoice])
async def delete_invoice(
    invoice_id: str,
    ledger: InvoiceLedger = Depends(get_invoices),
) -> list[Invoice]:
    return await ledger.delete(invoice_id)


@router.get("/{invoice_id}/download")
async def download_invoice(
    invoice_id: str,
    ledger: InvoiceLedger = Depends(get_invoices),
) -> Response:
    """Pass the API-rendered invoice document through as an attachment."""
    content, filename = await ledger.download(invoice_id)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
