"""REST endpoints for the Contacts page."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from src.crmdesk.api.deps import get_contacts
from src.crmdesk.crm.schemas import Contact, ContactCreate
from src.crmdesk.services.contacts import ContactDirectory

router = APIRouter(prefix="/contacts", tags=["contacts"])


@router.get("", response_model=list[Contact])
async def list_contacts(
    refresh: bool = Query(default=True, description="Refetch from the CRM API"),
    page: ContactDirectory = Depends(get_contacts),
) -> list[Contact]:
    """List contacts with their company names."""
    if refresh:
        return await page.refresh()
    return page.items


@router.post("", response_model=list[Contact], status_code=201)
async def create_contact(
    body: ContactCreate,
    page: ContactDirectory = Depends(get_contacts),
) -> list[Contact]:
    return await page.create(body)


@router.delete("/{contact_id}", response_model=list[Contact])
async def delete_contact(
    contact_id: str,
    page: ContactDirectory = Depends(get_contacts),
) -> list[Contact]:
    return await page.delete(contact_id)
