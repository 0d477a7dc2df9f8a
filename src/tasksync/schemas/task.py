"""Pydantic schemas for tasks.

- TaskCreate: what you POST to create a task
- TaskUpdate: what you PATCH to modify a task (all optional)
- TaskRead: what the API returns (includes computed overdue flags)
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from tasksync.domain.tasks import Task

_PRIORITY = r"^(low|medium|high|urgent)$"


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: str = Field(default="")
    project_id: uuid.UUID
    priority: str = Field(default="medium", pattern=_PRIORITY)
    assigned_to: list[uuid.UUID] = Field(default_factory=list)
    due_date: Optional[datetime] = None
    tags: list[str] = Field(default_factory=list)
    attachment_ids: list[uuid.UUID] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    """Partial update: only non-None fields are applied."""
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    priority: Optional[str] = Field(None, pattern=_PRIORITY)
    assigned_to: Optional[list[uuid.UUID]] = None
    due_date: Optional[datetime] = None
    tags: Optional[list[str]] = None


class TaskRead(BaseModel):
    id: str
    title: str
    slug: str
    description: str
    project_id: str
    created_by: str
    assigned_to: list[str]
    status: str
    priority: str
    due_date: Optional[datetime]
    completed_at: Optional[datetime]
    tags: list[str]
    attachment_ids: list[str]
    is_overdue: bool
    is_completed_late: bool
    created_at: datetime
    updated_at: Optional[datetime]

    @classmethod
    def from_entity(cls, task: Task) -> "TaskRead":
        return cls(
            id=task.id.value,
            title=task.title,
            slug=task.slug.value,
            description=task.description,
            project_id=task.project_id.value,
            created_by=task.created_by.value,
            assigned_to=[a.value for a in task.assigned_to],
            status=task.status.value,
            priority=task.priority.value,
            due_date=task.due_date,
            completed_at=task.completed_at,
            tags=task.tags,
            attachment_ids=[a.attachment_id.value for a in task.attachments.get_items()],
            is_overdue=task.is_overdue,
            is_completed_late=task.is_completed_late,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )
