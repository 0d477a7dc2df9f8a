"""Task aggregate and its value objects."""

import re
import unicodedata
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

from tasksync.core.clock import utcnow
from tasksync.core.entities import Entity, UniqueEntityID


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    DONE = "done"

    def next_status(self) -> "TaskStatus":
        """todo -> in_progress -> review -> done. Done has no successor."""
        if self is TaskStatus.DONE:
            raise ValueError("Task is already done")
        order = list(TaskStatus)
        return order[order.index(self) + 1]


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Slug:
    """URL-safe form of a title: "Fix Login Bug!" -> "fix-login-bug"."""

    __slots__ = ("value",)

    def __init__(self, value: str):
        self.value = value

    @classmethod
    def create_from_text(cls, text: str) -> "Slug":
        slug = unicodedata.normalize("NFKD", text)
        slug = "".join(c for c in slug if not unicodedata.combining(c))
        slug = slug.lower().strip()
        slug = re.sub(r"\s+", "-", slug)
        slug = re.sub(r"[^\w-]+", "", slug)
        slug = slug.replace("_", "-")
        slug = re.sub(r"--+", "-", slug)
        slug = re.sub(r"-$", "", slug)
        return cls(slug)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Slug) and other.value == self.value

    def __hash__(self) -> int:
        return hash(self.value)

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"Slug({self.value!r})"


# ─── Attachments ─────────────────────────────────────


@dataclass
class TaskAttachmentProps:
    task_id: UniqueEntityID
    attachment_id: UniqueEntityID


class TaskAttachment(Entity[TaskAttachmentProps]):
    @property
    def task_id(self) -> UniqueEntityID:
        return self.props.task_id

    @property
    def attachment_id(self) -> UniqueEntityID:
        return self.props.attachment_id

    @classmethod
    def create(
        cls,
        task_id: UniqueEntityID,
        attachment_id: UniqueEntityID,
        id: Optional[UniqueEntityID] = None,
    ) -> "TaskAttachment":
        return cls(TaskAttachmentProps(task_id=task_id, attachment_id=attachment_id), id)


class TaskAttachmentList:
    """Attachment list that remembers what was added and removed since load.

    Repositories persist the diff (new_items / removed_items) instead of
    rewriting every attachment row.
    """

    def __init__(self, initial: Optional[Iterable[TaskAttachment]] = None):
        self._current: list[TaskAttachment] = list(initial or [])
        self._initial: list[TaskAttachment] = list(self._current)
        self._new: list[TaskAttachment] = []
        self._removed: list[TaskAttachment] = []

    @staticmethod
    def _same(a: TaskAttachment, b: TaskAttachment) -> bool:
        return a.attachment_id == b.attachment_id

    def _contains(self, items: list[TaskAttachment], item: TaskAttachment) -> bool:
        return any(self._same(item, other) for other in items)

    def get_items(self) -> list[TaskAttachment]:
        return list(self._current)

    @property
    def new_items(self) -> list[TaskAttachment]:
        return list(self._new)

    @property
    def removed_items(self) -> list[TaskAttachment]:
        return list(self._removed)

    def add(self, item: TaskAttachment) -> None:
        if self._contains(self._removed, item):
            self._removed = [r for r in self._removed if not self._same(r, item)]
        if not self._contains(self._new, item) and not self._contains(self._initial, item):
            self._new.append(item)
        if not self._contains(self._current, item):
            self._current.append(item)

    def remove(self, item: TaskAttachment) -> None:
        self._current = [c for c in self._current if not self._same(c, item)]
        if self._contains(self._new, item):
            self._new = [n for n in self._new if not self._same(n, item)]
            return
        if not self._contains(self._removed, item):
            self._removed.append(item)

    def update(self, items: Iterable[TaskAttachment]) -> None:
        items = list(items)
        for item in self.get_items():
            if not self._contains(items, item):
                self.remove(item)
        for item in items:
            self.add(item)

    def __len__(self) -> int:
        return len(self._current)


# ─── Task ────────────────────────────────────────────


def _normalize_tags(tags: Iterable[str]) -> list[str]:
    cleaned = (t.strip() for t in tags if t is not None)
    return list(dict.fromkeys(t for t in cleaned if t))


@dataclass
class TaskProps:
    title: str
    slug: Slug
    project_id: UniqueEntityID
    created_by: UniqueEntityID
    description: str = ""
    assigned_to: list[UniqueEntityID] = field(default_factory=list)
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    tags: list[str] = field(default_factory=list)
    attachments: TaskAttachmentList = field(default_factory=TaskAttachmentList)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None


class Task(Entity[TaskProps]):
    @property
    def title(self) -> str:
        return self.props.title

    @title.setter
    def title(self, value: str) -> None:
        self.props.title = value
        self.props.slug = Slug.create_from_text(value)
        self.touch()

    @property
    def slug(self) -> Slug:
        return self.props.slug

    @property
    def description(self) -> str:
        return self.props.description

    @description.setter
    def description(self, value: str) -> None:
        self.props.description = value
        self.touch()

    @property
    def project_id(self) -> UniqueEntityID:
        return self.props.project_id

    @property
    def created_by(self) -> UniqueEntityID:
        return self.props.created_by

    @property
    def assigned_to(self) -> list[UniqueEntityID]:
        return list(self.props.assigned_to)

    @assigned_to.setter
    def assigned_to(self, value: Iterable[UniqueEntityID]) -> None:
        self.props.assigned_to = list(dict.fromkeys(value))
        self.touch()

    @property
    def status(self) -> TaskStatus:
        return self.props.status

    @status.setter
    def status(self, value: TaskStatus) -> None:
        self.props.status = TaskStatus(value)
        if self.props.status is TaskStatus.DONE:
            self.props.completed_at = utcnow()
        else:
            self.props.completed_at = None
        self.touch()

    @property
    def priority(self) -> TaskPriority:
        return self.props.priority

    @priority.setter
    def priority(self, value: TaskPriority) -> None:
        self.props.priority = TaskPriority(value)
        self.touch()

    @property
    def due_date(self) -> Optional[datetime]:
        return self.props.due_date

    @due_date.setter
    def due_date(self, value: Optional[datetime]) -> None:
        self.props.due_date = value
        self.touch()

    @property
    def completed_at(self) -> Optional[datetime]:
        return self.props.completed_at

    @property
    def tags(self) -> list[str]:
        return list(self.props.tags)

    @tags.setter
    def tags(self, value: Iterable[str]) -> None:
        self.props.tags = _normalize_tags(value)
        self.touch()

    @property
    def attachments(self) -> TaskAttachmentList:
        return self.props.attachments

    @attachments.setter
    def attachments(self, value: TaskAttachmentList) -> None:
        self.props.attachments = value
        self.touch()

    @property
    def created_at(self) -> datetime:
        return self.props.created_at

    @property
    def updated_at(self) -> Optional[datetime]:
        return self.props.updated_at

    # ─── Derived state ───────────────────────────────

    @property
    def is_overdue_and_not_completed(self) -> bool:
        return (
            self.props.due_date is not None
            and self.props.status is not TaskStatus.DONE
            and utcnow() > self.props.due_date
        )

    @property
    def is_completed_late(self) -> bool:
        return (
            self.props.status is TaskStatus.DONE
            and self.props.completed_at is not None
            and self.props.due_date is not None
            and self.props.completed_at > self.props.due_date
        )

    @property
    def is_overdue(self) -> bool:
        """Still open past the due date, or finished after it."""
        return self.is_overdue_and_not_completed or self.is_completed_late

    def touch(self) -> None:
        self.props.updated_at = utcnow()

    def advance_status(self) -> TaskStatus:
        self.status = self.props.status.next_status()
        return self.props.status

    @classmethod
    def create(
        cls,
        title: str,
        project_id: UniqueEntityID,
        created_by: UniqueEntityID,
        description: str = "",
        assigned_to: Optional[Iterable[UniqueEntityID]] = None,
        status: TaskStatus = TaskStatus.TODO,
        priority: TaskPriority = TaskPriority.MEDIUM,
        due_date: Optional[datetime] = None,
        completed_at: Optional[datetime] = None,
        tags: Optional[Iterable[str]] = None,
        attachments: Optional[TaskAttachmentList] = None,
        slug: Optional[Slug] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        id: Optional[UniqueEntityID] = None,
    ) -> "Task":
        return cls(
            TaskProps(
                title=title,
                slug=slug or Slug.create_from_text(title),
                project_id=project_id,
                created_by=created_by,
                description=description,
                assigned_to=list(dict.fromkeys(assigned_to or [])),
                status=TaskStatus(status),
                priority=TaskPriority(priority),
                due_date=due_date,
                completed_at=completed_at,
                tags=_normalize_tags(tags or []),
                attachments=attachments if attachments is not None else TaskAttachmentList(),
                created_at=created_at or utcnow(),
                updated_at=updated_at,
            ),
            id,
        )
