"""Task service: CRUD for task records.

Learn: tasks move todo → in_progress → review → done, one step at a time,
via advance_status(). Completion is stamped by the entity itself, so
"completed late" can be computed from completed_at vs due_date.
"""

from datetime import datetime
from typing import Iterable, Optional

import structlog

from tasksync.core.clock import utcnow
from tasksync.core.entities import UniqueEntityID
from tasksync.core.errors import (
    PastDueDateError,
    ResourceInvalidError,
    ResourceNotFoundError,
)
from tasksync.core.observability import with_observability
from tasksync.domain.tasks import (
    Task,
    TaskAttachment,
    TaskAttachmentList,
    TaskPriority,
)
from tasksync.ports.repositories import TasksRepository

logger = structlog.get_logger()


class TaskService:
    """Business logic for task CRUD and status progression."""

    def __init__(self, tasks: TasksRepository):
        self.tasks = tasks

    # ─── Create ──────────────────────────────────────────

    @with_observability("create_task", identifier="created_by")
    async def create(
        self,
        title: str,
        project_id: UniqueEntityID,
        created_by: UniqueEntityID,
        description: str = "",
        assigned_to: Optional[Iterable[UniqueEntityID]] = None,
        priority: TaskPriority = TaskPriority.MEDIUM,
        due_date: Optional[datetime] = None,
        tags: Optional[Iterable[str]] = None,
        attachment_ids: Optional[Iterable[UniqueEntityID]] = None,
    ) -> Task:
        if due_date is not None and due_date <= utcnow():
            raise PastDueDateError()

        task_id = UniqueEntityID()
        attachments = TaskAttachmentList(
            TaskAttachment.create(task_id=task_id, attachment_id=attachment_id)
            for attachment_id in attachment_ids or []
        )
        task = Task.create(
            title=title,
            project_id=project_id,
            created_by=created_by,
            description=description,
            assigned_to=assigned_to,
            priority=priority,
            due_date=due_date,
            tags=tags,
            attachments=attachments,
            id=task_id,
        )
        await self.tasks.create(task)

        logger.info("tasks.created", task_id=task.id.value, slug=task.slug.value)
        return task

    # ─── Read ────────────────────────────────────────────

    @with_observability("get_task")
    async def get(self, task_id: UniqueEntityID) -> Task:
        task = await self.tasks.find_by_id(task_id)
        if not task:
            raise ResourceNotFoundError("Task not found")
        return task

    @with_observability("list_project_tasks")
    async def list_for_project(
        self, project_id: UniqueEntityID, limit: int = 50, offset: int = 0
    ) -> list[Task]:
        return await self.tasks.find_many_by_project(project_id, limit=limit, offset=offset)

    # ─── Update ──────────────────────────────────────────

    @with_observability("update_task")
    async def update(
        self,
        task_id: UniqueEntityID,
        title: Optional[str] = None,
        description: Optional[str] = None,
        priority: Optional[TaskPriority] = None,
        tags: Optional[Iterable[str]] = None,
        assigned_to: Optional[Iterable[UniqueEntityID]] = None,
        due_date: Optional[datetime] = None,
    ) -> Task:
        """Partial update: only the given fields change."""
        task = await self.get(task_id)

        if due_date is not None and due_date <= utcnow():
            raise PastDueDateError()

        if title is not None:
            task.title = title
        if description is not None:
            task.description = description
        if priority is not None:
            task.priority = priority
        if tags is not None:
            task.tags = tags
        if assigned_to is not None:
            task.assigned_to = assigned_to
        if due_date is not None:
            task.due_date = due_date

        await self.tasks.save(task)
        return task

    @with_observability("advance_task_status")
    async def advance_status(self, task_id: UniqueEntityID) -> Task:
        task = await self.get(task_id)
        try:
            task.advance_status()
        except ValueError as e:
            raise ResourceInvalidError(str(e))
        await self.tasks.save(task)

        logger.info("tasks.status_changed", task_id=task.id.value, status=task.status.value)
        return task

    # ─── Delete ──────────────────────────────────────────

    @with_observability("delete_task")
    async def delete(self, task_id: UniqueEntityID) -> None:
        task = await self.get(task_id)
        await self.tasks.delete(task)
