"""Companies page: list, create and delete companies."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from src.crmdesk.crm.schemas import Company, CompanyCreate
from src.crmdesk.services.base import ListPage


class CompanyDirectory(ListPage):
    noun = "company"
    plural = "companies"

    async def _fetch(self) -> list[Company]:
        return await self._client.list_companies()

    async def create(self, fields: CompanyCreate | Mapping[str, Any]) -> list[Company]:
        """Validate the form, POST /companies, then reload the list."""
        payload = fields if isinstance(fields, CompanyCreate) else CompanyCreate.model_validate(fields)
        return await self._mutate_and_refresh(
            self._client.create_company(payload.to_wire()), "Failed to add company"
        )

    async def delete(self, company_id: str) -> list[Company]:
        return await self._mutate_and_refresh(
            self._client.delete_company(company_id), "Failed to delete company"
        )
