"""REST endpoints for the Tasks page."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from src.crmdesk.api.deps import get_tasks
from src.crmdesk.crm.schemas import RelationKind, Task, TaskWrite
from src.crmdesk.services.tasks import RelationOption, TaskList

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("", response_model=list[Task])
async def list_tasks(
    refresh: bool = Query(default=True, description="Refetch from the CRM API"),
    tasks: TaskList = Depends(get_tasks),
) -> list[Task]:
    if refresh:
        return await tasks.refresh()
    return tasks.items


@router.post("", response_model=list[Task], status_code=201)
async def create_task(
    body: TaskWrite,
    tasks: TaskList = Depends(get_tasks),
) -> list[Task]:
    return await tasks.create(body)


@router.put("/{task_id}", response_model=list[Task])
async def update_task(
    task_id: str,
    body: TaskWrite,
    tasks: TaskList = Depends(get_tasks),
) -> list[Task]:
    """Save an edited task and return the refreshed list."""
    return await tasks.update(task_id, body)


@router.delete("/{task_id}", response_model=list[Task])
async def delete_task(
    task_id: str,
    tasks: TaskList = Depends(get_tasks),
) -> list[Task]:
    return await tasks.delete(task_id)


@router.get("/relations/{kind}", response_model=list[RelationOption])
async def relation_options(
    kind: RelationKind,
    tasks: TaskList = Depends(get_tasks),
) -> list[RelationOption]:
    """Records a task can be related to for the chosen kind."""
    return await tasks.relation_options(kind)
