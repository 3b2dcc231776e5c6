"""Tasks page: list, create, edit and delete tasks.

A task relates to exactly one company, contact or deal. The relation picker
offers the records of the collection matching the selected kind.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from src.crmdesk.crm.schemas import RelationKind, Task, TaskWrite
from src.crmdesk.services.base import ListPage


class RelationOption(BaseModel):
    """One choice in the "related to" picker."""

    id: str
    label: str


class TaskList(ListPage):
    noun = "task"
    plural = "tasks"

    async def _fetch(self) -> list[Task]:
        return await self._client.list_tasks()

    async def create(self, fields: TaskWrite | Mapping[str, Any]) -> list[Task]:
        payload = _validate(fields)
        return await self._mutate_and_refresh(
            self._client.create_task(payload.to_wire()), "Failed to add task"
        )

    async def update(self, task_id: str, fields: TaskWrite | Mapping[str, Any]) -> list[Task]:
        """PUT /tasks/{task_id} with the edited form, then reload the list."""
        payload = _validate(fields)
        return await self._mutate_and_refresh(
            self._client.update_task(task_id, payload.to_wire()), "Failed to update task"
        )

    async def delete(self, task_id: str) -> list[Task]:
        return await self._mutate_and_refresh(
            self._client.delete_task(task_id), "Failed to delete task"
        )

    async def relation_options(self, kind: RelationKind | str) -> list[RelationOption]:
        """List the records a task of the given relation kind can point at.

        Companies and contacts are labelled by name, deals by title.

        Raises:
            ValueError: If ``kind`` is not Company, Contact or Deal.
        """
        kind = RelationKind(kind)
        if kind == RelationKind.COMPANY:
            request, plural = self._client.list_companies(), "companies"
        elif kind == RelationKind.CONTACT:
            request, plural = self._client.list_contacts(), "contacts"
        else:
            request, plural = self._client.list_deals(), "deals"

        records = await self._call(request, f"Failed to load {plural}")
        return [
            RelationOption(id=r.id, label=getattr(r, "name", None) or getattr(r, "title", ""))
            for r in records
        ]


def _validate(fields: TaskWrite | Mapping[str, Any]) -> TaskWrite:
    return fields if isinstance(fields, TaskWrite) else TaskWrite.model_validate(fields)
