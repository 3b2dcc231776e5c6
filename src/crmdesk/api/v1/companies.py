"""REST endpoints for the Companies page."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from src.crmdesk.api.deps import get_companies
from src.crmdesk.crm.schemas import Company, CompanyCreate
from src.crmdesk.services.companies import CompanyDirectory

router = APIRouter(prefix="/companies", tags=["companies"])


@router.get("", response_model=list[Company])
async def list_companies(
    refresh: bool = Query(default=True, description="Refetch from the CRM API"),
    page: CompanyDirectory = Depends(get_companies),
) -> list[Company]:
    """List companies."""
    if refresh:
        return await page.refresh()
    return page.items


@router.post("", response_model=list[Company], status_code=201)
async def create_company(
    body: CompanyCreate,
    page: CompanyDirectory = Depends(get_companies),
) -> list[Company]:
    """Create a company and return the refreshed list."""
    return await page.create(body)


@router.delete("/{company_id}", response_model=list[Company])
async def delete_company(
    company_id: str,
    page: CompanyDirectory = Depends(get_companies),
) -> list[Company]:
    return await page.delete(company_id)
