"""Contacts page: list, create and delete contacts.

Contacts reference a company by id; the API resolves it to the company name
for display.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from src.crmdesk.crm.schemas import Contact, ContactCreate
from src.crmdesk.services.base import ListPage


class ContactDirectory(ListPage):
    noun = "contact"
    plural = "contacts"

    async def _fetch(self) -> list[Contact]:
        return await self._client.list_contacts()

    async def create(self, fields: ContactCreate | Mapping[str, Any]) -> list[Contact]:
        payload = fields if isinstance(fields, ContactCreate) else ContactCreate.model_validate(fields)
        return await self._mutate_and_refresh(
            self._client.create_contact(payload.to_wire()), "Failed to add contact"
        )

    async def delete(self, contact_id: str) -> list[Contact]:
        return await self._mutate_and_refresh(
            self._client.delete_contact(contact_id), "Failed to delete contact"
        )
