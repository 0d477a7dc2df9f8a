"""SQLAlchemy repositories for users, email requests and tasks.

Learn: each method opens its own short-lived session from the factory,
commits, and closes. The repositories are process-wide singletons shared
by API requests, event subscribers and the email worker, so they must
not hold a session between calls.

Domain events are dispatched only after the commit succeeded.
"""

from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tasksync.core.entities import UniqueEntityID
from tasksync.core.events import DomainEvents
from tasksync.core.observability import track_query
from tasksync.db.models import EmailRequestRecord, TaskRecord, UserRecord
from tasksync.domain.email_requests import EmailPriority, EmailRequest, EmailStatus
from tasksync.domain.tasks import Task
from tasksync.domain.users import User
from tasksync.ports.repositories import (
    EmailRequestsRepository,
    TasksRepository,
    UsersRepository,
)
from tasksync.repositories.mappers import EmailRequestMapper, TaskMapper, UserMapper


class SqlUsersRepository(UsersRepository):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @track_query("find_by_id", "users")
    async def find_by_id(self, id: UniqueEntityID) -> Optional[User]:
        async with self.session_factory() as db:
            row = await db.get(UserRecord, id.value)
            return UserMapper.to_domain(row) if row else None

    @track_query("find_by_email", "users")
    async def find_by_email(self, email: str) -> Optional[User]:
        async with self.session_factory() as db:
            result = await db.execute(select(UserRecord).where(UserRecord.email == email))
            row = result.scalars().first()
            return UserMapper.to_domain(row) if row else None

    @track_query("create", "users")
    async def create(self, user: User) -> None:
        async with self.session_factory() as db:
            db.add(UserRecord(**UserMapper.to_persistence(user)))
            await db.commit()
        await DomainEvents.dispatch_events_for_aggregate(user.id)

    @track_query("save", "users")
    async def save(self, user: User) -> None:
        async with self.session_factory() as db:
            await db.merge(UserRecord(**UserMapper.to_persistence(user)))
            await db.commit()
        await DomainEvents.dispatch_events_for_aggregate(user.id)


class SqlEmailRequestsRepository(EmailRequestsRepository):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @track_query("find_by_id", "email_requests")
    async def find_by_id(self, id: UniqueEntityID) -> Optional[EmailRequest]:
        async with self.session_factory() as db:
            row = await db.get(EmailRequestRecord, id.value)
            return EmailRequestMapper.to_domain(row) if row else None

    @track_query("find_pending", "email_requests")
    async def find_pending(self, limit: int = 50, offset: int = 0) -> list[EmailRequest]:
        q = (
            select(EmailRequestRecord)
            .where(EmailRequestRecord.status == EmailStatus.PENDING.value)
            .order_by(EmailRequestRecord.created_at.asc())
            .limit(limit)
            .offset(offset)
        )
        async with self.session_factory() as db:
            result = await db.execute(q)
            return [EmailRequestMapper.to_domain(r) for r in result.scalars().all()]

    @track_query("find_by_status_and_priority", "email_requests")
    async def find_by_status_and_priority(
        self,
        status: EmailStatus,
        priority: EmailPriority,
        limit: int = 50,
        offset: int = 0,
    ) -> list[EmailRequest]:
        q = (
            select(EmailRequestRecord)
            .where(
                EmailRequestRecord.status == EmailStatus(status).value,
                EmailRequestRecord.priority == EmailPriority(priority).value,
            )
            .order_by(EmailRequestRecord.created_at.asc())
            .limit(limit)
            .offset(offset)
        )
        async with self.session_factory() as db:
            result = await db.execute(q)
            return [EmailRequestMapper.to_domain(r) for r in result.scalars().all()]

    @track_query("create", "email_requests")
    async def create(self, email_request: EmailRequest) -> None:
        async with self.session_factory() as db:
            db.add(EmailRequestRecord(**EmailRequestMapper.to_persistence(email_request)))
            await db.commit()

    @track_query("save", "email_requests")
    async def save(self, email_request: EmailRequest) -> None:
        async with self.session_factory() as db:
            await db.merge(EmailRequestRecord(**EmailRequestMapper.to_persistence(email_request)))
            await db.commit()


class SqlTasksRepository(TasksRepository):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @track_query("create", "tasks")
    async def create(self, task: Task) -> None:
        async with self.session_factory() as db:
            db.add(TaskRecord(**TaskMapper.to_persistence(task)))
            await db.commit()

    @track_query("find_by_id", "tasks")
    async def find_by_id(self, id: UniqueEntityID) -> Optional[Task]:
        async with self.session_factory() as db:
            row = await db.get(TaskRecord, id.value)
            return TaskMapper.to_domain(row) if row else None

    @track_query("find_many_by_project", "tasks")
    async def find_many_by_project(
        self, project_id: UniqueEntityID, limit: int = 50, offset: int = 0
    ) -> list[Task]:
        q = (
            select(TaskRecord)
            .where(TaskRecord.project_id == project_id.value)
            .order_by(TaskRecord.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        async with self.session_factory() as db:
            result = await db.execute(q)
            return [TaskMapper.to_domain(r) for r in result.scalars().all()]

    @track_query("save", "tasks")
    async def save(self, task: Task) -> None:
        async with self.session_factory() as db:
            await db.merge(TaskRecord(**TaskMapper.to_persistence(task)))
            await db.commit()

    @track_query("delete", "tasks")
    async def delete(self, task: Task) -> None:
        async with self.session_factory() as db:
            await db.execute(delete(TaskRecord).where(TaskRecord.id == task.id.value))
            await db.commit()
