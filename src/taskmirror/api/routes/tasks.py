"""
Task API routes.

Provides endpoints for listing and mutating tasks:
- GET    /api/tasks       - List (where/sort/select/skip/limit/count)
- POST   /api/tasks       - Create, adding to the assignee's pending list
- GET    /api/tasks/{id}  - Single task (select)
- PUT    /api/tasks/{id}  - Strict replace, resynchronizing pending lists
- DELETE /api/tasks/{id}  - Delete, removing from the assignee's pending list
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, status
from pydantic import BaseModel, ConfigDict, Field

from taskmirror.api.deps import get_config, get_engine
from taskmirror.api.params import ListParams, list_params, select_param
from taskmirror.core.config.models import TaskMirrorConfig
from taskmirror.core.store.query import project
from taskmirror.core.sync import SyncEngine

router = APIRouter()


class TaskPayload(BaseModel):
    """Request body for POST/PUT /api/tasks.

    Non-string descriptions and assignees and non-boolean ``completed``
    values fall back to their defaults in the engine.
    """

    name: Any = None
    description: Any = ""
    deadline: Any = None
    completed: Any = False
    assigned_user: Any = Field(default="", alias="assignedUser")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


@router.get("/tasks")
async def list_tasks(
    params: ListParams = Depends(list_params),
    engine: SyncEngine = Depends(get_engine),
    config: TaskMirrorConfig = Depends(get_config),
) -> dict[str, Any]:
    """List tasks (paged by ``api.default_task_limit``), or count them."""
    if params.count:
        return {"message": "OK", "data": engine.count_tasks(params.where)}

    limit = params.limit if params.limit is not None else config.api.default_task_limit
    tasks = engine.list_tasks(
        params.where,
        sort=params.sort,
        select=params.select,
        skip=params.skip,
        limit=limit,
    )
    return {"message": "OK", "data": tasks}


@router.post("/tasks", status_code=status.HTTP_201_CREATED)
async def create_task(
    payload: TaskPayload | None = Body(default=None),
    engine: SyncEngine = Depends(get_engine),
) -> dict[str, Any]:
    """Create a task."""
    payload = payload or TaskPayload()
    result = engine.create_task(
        payload.name,
        payload.deadline,
        description=payload.description,
        completed=payload.completed,
        assigned_user=payload.assigned_user,
    )
    return {"message": result.note, "data": result.entity.to_document()}


@router.get("/tasks/{task_id}")
async def get_task(
    task_id: str,
    select: dict[str, Any] | str | None = Depends(select_param),
    engine: SyncEngine = Depends(get_engine),
) -> dict[str, Any]:
    """Fetch one task by id."""
    task = engine.get_task(task_id)
    return {"message": "OK", "data": project(task.to_document(), select)}


@router.put("/tasks/{task_id}")
async def update_task(
    task_id: str,
    payload: TaskPayload | None = Body(default=None),
    engine: SyncEngine = Depends(get_engine),
) -> dict[str, Any]:
    """Replace a task; the message notes pending-list changes."""
    payload = payload or TaskPayload()
    result = engine.update_task(
        task_id,
        payload.name,
        payload.deadline,
        description=payload.description,
        completed=payload.completed,
        assigned_user=payload.assigned_user,
    )
    return {"message": result.note, "data": result.entity.to_document()}


@router.delete("/tasks/{task_id}")
async def delete_task(
    task_id: str,
    engine: SyncEngine = Depends(get_engine),
) -> dict[str, Any]:
    """Delete a task and return its last state."""
    result = engine.delete_task(task_id)
    return {"message": result.note, "data": result.entity.to_document()}
