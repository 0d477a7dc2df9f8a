"""Task API routes.

Learn: Thin route handlers that delegate to TaskService. Service errors
(not found, past due date, already done) map to HTTP 404/400/409.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from tasksync.api.deps import get_task_service
from tasksync.auth.dependencies import CurrentIdentity, get_current_user
from tasksync.core.entities import UniqueEntityID
from tasksync.core.errors import (
    PastDueDateError,
    ResourceInvalidError,
    ResourceNotFoundError,
)
from tasksync.schemas.task import TaskCreate, TaskRead, TaskUpdate
from tasksync.services.task_service import TaskService

router = APIRouter()


def _id(value: uuid.UUID) -> UniqueEntityID:
    return UniqueEntityID(str(value))


# ─── Tasks ───────────────────────────────────────────────


@router.post("/tasks", response_model=TaskRead, status_code=201)
async def create_task(
    body: TaskCreate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TaskService = Depends(get_task_service),
):
    try:
        task = await svc.create(
            title=body.title,
            project_id=_id(body.project_id),
            created_by=UniqueEntityID(identity.user_id),
            description=body.description,
            assigned_to=[_id(a) for a in body.assigned_to],
            priority=body.priority,
            due_date=body.due_date,
            tags=body.tags,
            attachment_ids=[_id(a) for a in body.attachment_ids],
        )
    except PastDueDateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return TaskRead.from_entity(task)


@router.get("/projects/{project_id}/tasks", response_model=list[TaskRead])
async def list_project_tasks(
    project_id: uuid.UUID,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    svc: TaskService = Depends(get_task_service),
):
    tasks = await svc.list_for_project(_id(project_id), limit=limit, offset=offset)
    return [TaskRead.from_entity(t) for t in tasks]


@router.get("/tasks/{task_id}", response_model=TaskRead)
async def get_task(task_id: uuid.UUID, svc: TaskService = Depends(get_task_service)):
    try:
        task = await svc.get(_id(task_id))
    except ResourceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return TaskRead.from_entity(task)


@router.patch("/tasks/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: uuid.UUID,
    body: TaskUpdate,
    svc: TaskService = Depends(get_task_service),
):
    """Partial update: only non-None fields are applied."""
    try:
        task = await svc.update(
            _id(task_id),
            title=body.title,
            description=body.description,
            priority=body.priority,
            tags=body.tags,
            assigned_to=[_id(a) for a in body.assigned_to] if body.assigned_to is not None else None,
            due_date=body.due_date,
        )
    except ResourceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PastDueDateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return TaskRead.from_entity(task)


@router.post("/tasks/{task_id}/advance", response_model=TaskRead)
async def advance_task(task_id: uuid.UUID, svc: TaskService = Depends(get_task_service)):
    """Move the task one step: todo → in_progress → review → done."""
    try:
        task = await svc.advance_status(_id(task_id))
    except ResourceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ResourceInvalidError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return TaskRead.from_entity(task)


@router.delete("/tasks/{task_id}", status_code=204)
async def delete_task(task_id: uuid.UUID, svc: TaskService = Depends(get_task_service)):
    try:
        await svc.delete(_id(task_id))
    except ResourceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=204)
