"""In-memory adapters for every repository and infrastructure port.

Learn: these back the test suite and the `memory` persistence backend
(TASKSYNC_PERSISTENCE_BACKEND=memory), so the API runs with no Postgres,
Redis, SMTP or Supabase. They honour the same contracts as the real
adapters, including domain event dispatch after writes.
"""

import asyncio
import time
import uuid
from collections import deque
from datetime import timedelta
from typing import Any, Optional

from tasksync.core.clock import utcnow
from tasksync.core.entities import UniqueEntityID
from tasksync.core.events import DomainEvents
from tasksync.domain.email_requests import (
    EmailPriority,
    EmailRequest,
    EmailStatus,
)
from tasksync.domain.tasks import Task
from tasksync.domain.tokens import AuthToken, TokenType, VerificationToken
from tasksync.domain.users import User
from tasksync.ports.repositories import (
    AuthTokensRepository,
    EmailRequestsRepository,
    TasksRepository,
    UsersRepository,
    VerificationTokensRepository,
)
from tasksync.ports.services import (
    EmailQueue,
    FileStorage,
    KeyValueStore,
    QueuedEmail,
    SignedUrl,
    UploadedFile,
)


# ═══════════════════════════════════════════════════════════
# Repositories
# ═══════════════════════════════════════════════════════════


class InMemoryUsersRepository(UsersRepository):
    def __init__(self):
        self.items: list[User] = []

    async def find_by_id(self, id: UniqueEntityID) -> Optional[User]:
        return next((u for u in self.items if u.id == id), None)

    async def find_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self.items if u.email == email), None)

    async def create(self, user: User) -> None:
        self.items.append(user)
        await DomainEvents.dispatch_events_for_aggregate(user.id)

    async def save(self, user: User) -> None:
        self.items = [user if u.id == user.id else u for u in self.items]
        await DomainEvents.dispatch_events_for_aggregate(user.id)


class InMemoryAuthTokensRepository(AuthTokensRepository):
    """One token per user, like the Redis adapter's `auth-token:{user_id}` key."""

    def __init__(self):
        self.items: dict[str, AuthToken] = {}

    async def find_by_user_id(self, user_id: UniqueEntityID) -> Optional[AuthToken]:
        return self.items.get(user_id.value)

    async def find_by_refresh_token(self, refresh_token: str) -> Optional[AuthToken]:
        return next(
            (t for t in self.items.values() if t.refresh_token == refresh_token),
            None,
        )

    async def create(self, auth_token: AuthToken) -> None:
        self.items[auth_token.user_id.value] = auth_token

    async def delete(self, auth_token: AuthToken) -> None:
        current = self.items.get(auth_token.user_id.value)
        if current is not None and current.id == auth_token.id:
            del self.items[auth_token.user_id.value]

    async def revoke_tokens_by_user_id(self, user_id: UniqueEntityID) -> None:
        self.items.pop(user_id.value, None)


class InMemoryVerificationTokensRepository(VerificationTokensRepository):
    """Keyed by `type:token`. Expired tokens read as missing, like a TTL'd key."""

    def __init__(self):
        self.items: dict[str, VerificationToken] = {}

    async def get(self, token: str, type: TokenType) -> Optional[VerificationToken]:
        key = f"{TokenType(type).value}:{token}"
        verification = self.items.get(key)
        if verification is None:
            return None
        if verification.is_expired():
            del self.items[key]
            return None
        return verification

    async def save(self, verification_token: VerificationToken) -> None:
        self.items[verification_token.key] = verification_token
        await DomainEvents.dispatch_events_for_aggregate(verification_token.id)

    async def delete(self, verification_token: VerificationToken) -> None:
        self.items.pop(verification_token.key, None)

    async def revoke_tokens_by_user_id(self, user_id: UniqueEntityID) -> None:
        self.items = {
            key: token for key, token in self.items.items() if token.user_id != user_id
        }


class InMemoryEmailRequestsRepository(EmailRequestsRepository):
    def __init__(self):
        self.items: list[EmailRequest] = []

    async def find_by_id(self, id: UniqueEntityID) -> Optional[EmailRequest]:
        return next((r for r in self.items if r.id == id), None)

    async def find_pending(self, limit: int = 50, offset: int = 0) -> list[EmailRequest]:
        pending = [r for r in self.items if r.status is EmailStatus.PENDING]
        return pending[offset : offset + limit]

    async def find_by_status_and_priority(
        self,
        status: EmailStatus,
        priority: EmailPriority,
        limit: int = 50,
        offset: int = 0,
    ) -> list[EmailRequest]:
        status, priority = EmailStatus(status), EmailPriority(priority)
        matches = [
            r for r in self.items if r.status is status and r.priority is priority
        ]
        return matches[offset : offset + limit]

    async def create(self, email_request: EmailRequest) -> None:
        self.items.append(email_request)

    async def save(self, email_request: EmailRequest) -> None:
        self.items = [
            email_request if r.id == email_request.id else r for r in self.items
        ]


class InMemoryTasksRepository(TasksRepository):
    def __init__(self):
        self.items: list[Task] = []

    async def create(self, task: Task) -> None:
        self.items.append(task)

    async def find_by_id(self, id: UniqueEntityID) -> Optional[Task]:
        return next((t for t in self.items if t.id == id), None)

    async def find_many_by_project(
        self, project_id: UniqueEntityID, limit: int = 50, offset: int = 0
    ) -> list[Task]:
        tasks = [t for t in self.items if t.project_id == project_id]
        tasks.sort(key=lambda t: t.created_at, reverse=True)
        return tasks[offset : offset + limit]

    async def save(self, task: Task) -> None:
        self.items = [task if t.id == task.id else t for t in self.items]

    async def delete(self, task: Task) -> None:
        self.items = [t for t in self.items if t.id != task.id]


# ═══════════════════════════════════════════════════════════
# Infrastructure ports
# ═══════════════════════════════════════════════════════════


class InMemoryEmailQueue(EmailQueue):
    """One FIFO per priority; dequeue drains urgent before high before..."""

    def __init__(self):
        self.queues: dict[EmailPriority, deque[QueuedEmail]] = {
            p: deque() for p in EmailPriority
        }
        self.delayed: list[tuple[float, QueuedEmail]] = []

    async def enqueue(
        self,
        email_request_id: str,
        priority: EmailPriority,
        attempt: int = 0,
        delay: float = 0.0,
    ) -> None:
        entry = QueuedEmail(email_request_id, EmailPriority(priority), attempt)
        if delay > 0:
            self.delayed.append((time.monotonic() + delay, entry))
        else:
            self.queues[entry.priority].append(entry)

    async def dequeue(self) -> Optional[QueuedEmail]:
        self._promote_due()
        for priority in sorted(EmailPriority, key=lambda p: p.queue_value, reverse=True):
            if self.queues[priority]:
                return self.queues[priority].popleft()
        return None

    async def size(self) -> int:
        return sum(len(q) for q in self.queues.values()) + len(self.delayed)

    def _promote_due(self) -> None:
        now = time.monotonic()
        due = sorted((item for item in self.delayed if item[0] <= now), key=lambda i: i[0])
        self.delayed = [item for item in self.delayed if item[0] > now]
        for _ready_at, entry in due:
            self.queues[entry.priority].append(entry)


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self):
        self.lists: dict[str, list[str]] = {}
        self.published: list[tuple[str, dict[str, Any]]] = []
        self._lock = asyncio.Lock()

    async def lpush(self, key: str, value: str) -> None:
        async with self._lock:
            self.lists.setdefault(key, []).insert(0, value)

    async def lrange(self, key: str, start: int = 0, end: int = -1) -> list[str]:
        items = self.lists.get(key, [])
        stop = None if end == -1 else end + 1
        return items[start:stop]

    async def publish(self, channel: str, message: dict[str, Any]) -> None:
        self.published.append((channel, message))


class InMemoryFileStorage(FileStorage):
    """Keeps uploaded bytes in a dict; signed URLs point at a fake host."""

    def __init__(self, base_url: str = "memory://avatars"):
        self.base_url = base_url
        self.files: dict[str, tuple[str, bytes]] = {}

    async def upload(self, filename: str, content_type: str, body: bytes) -> UploadedFile:
        extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
        path = f"{uuid.uuid4()}-{int(utcnow().timestamp() * 1000)}.{extension}"
        self.files[path] = (content_type, body)
        return UploadedFile(url=path)

    async def delete(self, path: str) -> None:
        self.files.pop(path, None)

    async def get_signed_url(self, path: str, expires_in: int = 3600) -> SignedUrl:
        expires_at = utcnow() + timedelta(seconds=expires_in)
        return SignedUrl(
            url=f"{self.base_url}/{path}?expires={int(expires_at.timestamp())}",
            expires_at=expires_at,
        )
