"""
User API routes.

Provides endpoints for listing and mutating users:
- GET    /api/users       - List (where/sort/select/skip/limit/count)
- POST   /api/users       - Create, claiming the requested pending tasks
- GET    /api/users/{id}  - Single user (select)
- PUT    /api/users/{id}  - Strict replace of name/email/pendingTasks
- DELETE /api/users/{id}  - Delete, unassigning incomplete tasks
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, status
from pydantic import BaseModel, ConfigDict, Field

from taskmirror.api.deps import get_engine
from taskmirror.api.params import ListParams, list_params, select_param
from taskmirror.core.store.query import project
from taskmirror.core.sync import SyncEngine

router = APIRouter()


class UserPayload(BaseModel):
    """Request body for POST/PUT /api/users.

    Fields are loosely typed; required-field checks happen in the sync engine.
    """

    name: Any = None
    email: Any = None
    pending_tasks: Any = Field(default=None, alias="pendingTasks")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


@router.get("/users")
async def list_users(
    params: ListParams = Depends(list_params),
    engine: SyncEngine = Depends(get_engine),
) -> dict[str, Any]:
    """List users, or count them with ``count=true``."""
    if params.count:
        return {"message": "OK", "data": engine.count_users(params.where)}

    users = engine.list_users(
        params.where,
        sort=params.sort,
        select=params.select,
        skip=params.skip,
        limit=params.limit or 0,
    )
    return {"message": "OK", "data": users}


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserPayload | None = Body(default=None),
    engine: SyncEngine = Depends(get_engine),
) -> dict[str, Any]:
    """Create a user; the message notes any tasks claimed from other users."""
    payload = payload or UserPayload()
    result = engine.create_user(payload.name, payload.email, payload.pending_tasks)
    return {"message": result.note, "data": result.entity.to_document()}


@router.get("/users/{user_id}")
async def get_user(
    user_id: str,
    select: dict[str, Any] | str | None = Depends(select_param),
    engine: SyncEngine = Depends(get_engine),
) -> dict[str, Any]:
    """Fetch one user by id."""
    user = engine.get_user(user_id)
    return {"message": "OK", "data": project(user.to_document(), select)}


@router.put("/users/{user_id}")
async def update_user(
    user_id: str,
    payload: UserPayload | None = Body(default=None),
    engine: SyncEngine = Depends(get_engine),
) -> dict[str, Any]:
    """Replace a user's name, email and pending tasks."""
    payload = payload or UserPayload()
    result = engine.update_user(user_id, payload.name, payload.email, payload.pending_tasks)
    return {"message": result.note, "data": result.entity.to_document()}


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    engine: SyncEngine = Depends(get_engine),
) -> dict[str, Any]:
    """Delete a user and return its last state."""
    result = engine.delete_user(user_id)
    return {"message": result.note, "data": result.entity.to_document()}
