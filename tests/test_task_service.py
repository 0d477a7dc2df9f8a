"""TaskService: create, read, update, advance, delete."""

from datetime import timedelta

import pytest

from tasksync.core.clock import utcnow
from tasksync.core.entities import UniqueEntityID
from tasksync.core.errors import PastDueDateError, ResourceInvalidError, ResourceNotFoundError
from tasksync.domain.tasks import TaskPriority, TaskStatus


@pytest.fixture()
def svc(container):
    return container.task_service


@pytest.fixture()
def project_id():
    return UniqueEntityID()


async def test_create_task_with_attachments(svc, project_id):
    attachment_id = UniqueEntityID()
    task = await svc.create(
        title="Write API docs",
        project_id=project_id,
        created_by=UniqueEntityID(),
        priority=TaskPriority.HIGH,
        due_date=utcnow() + timedelta(days=3),
        tags=["docs"],
        attachment_ids=[attachment_id],
    )

    assert task.slug.value == "write-api-docs"
    assert task.priority is TaskPriority.HIGH
    items = task.attachments.get_items()
    assert [a.attachment_id for a in items] == [attachment_id]
    assert items[0].task_id == task.id
    assert task.updated_at is None


async def test_create_task_rejects_past_due_date(svc, project_id):
    with pytest.raises(PastDueDateError):
        await svc.create(
            title="Too late",
            project_id=project_id,
            created_by=UniqueEntityID(),
            due_date=utcnow() - timedelta(minutes=1),
        )


async def test_get_missing_task(svc):
    with pytest.raises(ResourceNotFoundError):
        await svc.get(UniqueEntityID())


async def test_list_for_project(svc, project_id):
    for title in ("One", "Two"):
        await svc.create(title=title, project_id=project_id, created_by=UniqueEntityID())
    await svc.create(title="Other", project_id=UniqueEntityID(), created_by=UniqueEntityID())

    tasks = await svc.list_for_project(project_id)
    assert sorted(t.title for t in tasks) == ["One", "Two"]


async def test_update_applies_only_given_fields(svc, project_id):
    task = await svc.create(
        title="Draft", project_id=project_id, created_by=UniqueEntityID(), description="keep"
    )

    updated = await svc.update(task.id, title="Final draft", tags=["a", "a", "b"])

    assert updated.title == "Final draft"
    assert updated.slug.value == "final-draft"
    assert updated.description == "keep"
    assert updated.tags == ["a", "b"]
    assert updated.updated_at is not None


async def test_advance_status_until_done(svc, project_id):
    task = await svc.create(title="Ship", project_id=project_id, created_by=UniqueEntityID())

    for expected in (TaskStatus.IN_PROGRESS, TaskStatus.REVIEW, TaskStatus.DONE):
        task = await svc.advance_status(task.id)
        assert task.status is expected
    assert task.completed_at is not None

    with pytest.raises(ResourceInvalidError):
        await svc.advance_status(task.id)


async def test_delete_task(svc, project_id):
    task = await svc.create(title="Temp", project_id=project_id, created_by=UniqueEntityID())
    await svc.delete(task.id)
    with pytest.raises(ResourceNotFoundError):
        await svc.get(task.id)
