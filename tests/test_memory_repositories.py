"""In-memory adapters honour the same contracts as the Redis/SQL ones."""

from datetime import timedelta

from tasksync.core.clock import utcnow
from tasksync.core.entities import UniqueEntityID
from tasksync.core.events import DomainEvents
from tasksync.domain.email_requests import EmailPriority
from tasksync.domain.events import EmailVerificationRequestedEvent, UserRegisteredEvent
from tasksync.domain.tasks import Task
from tasksync.domain.tokens import AuthToken, TokenType, VerificationToken
from tasksync.domain.users import User
from tasksync.ports.services import QueuedEmail
from tasksync.repositories.memory import (
    InMemoryAuthTokensRepository,
    InMemoryEmailQueue,
    InMemoryFileStorage,
    InMemoryKeyValueStore,
    InMemoryTasksRepository,
    InMemoryUsersRepository,
    InMemoryVerificationTokensRepository,
)


async def test_users_repository_dispatches_events_after_create():
    seen = []
    DomainEvents.register(lambda e: seen.append(e.user.email), UserRegisteredEvent.event_name())
    repo = InMemoryUsersRepository()

    await repo.create(User.create(name="Ada", email="ada@example.com", password_hash="h"))

    assert seen == ["ada@example.com"]
    assert (await repo.find_by_email("ada@example.com")).name == "Ada"
    assert await repo.find_by_email("nobody@example.com") is None


async def test_auth_tokens_one_per_user():
    repo = InMemoryAuthTokensRepository()
    user_id = UniqueEntityID()
    expires = utcnow() + timedelta(days=7)
    first = AuthToken.create(user_id=user_id, refresh_token="r1", expires_at=expires)
    second = AuthToken.create(user_id=user_id, refresh_token="r2", expires_at=expires)

    await repo.create(first)
    await repo.create(second)

    assert (await repo.find_by_user_id(user_id)).refresh_token == "r2"
    assert await repo.find_by_refresh_token("r1") is None

    # Deleting a stale token must not drop the current one
    await repo.delete(first)
    assert await repo.find_by_user_id(user_id) is not None

    await repo.revoke_tokens_by_user_id(user_id)
    assert await repo.find_by_user_id(user_id) is None


async def test_verification_tokens_keyed_by_type_and_token():
    seen = []
    DomainEvents.register(seen.append, EmailVerificationRequestedEvent.event_name())
    repo = InMemoryVerificationTokensRepository()
    token = VerificationToken.create(user_id=UniqueEntityID(), type=TokenType.EMAIL_VERIFY)

    await repo.save(token)

    assert len(seen) == 1
    assert await repo.get(token.token, TokenType.EMAIL_VERIFY) is token
    assert await repo.get(token.token, TokenType.PASSWORD_RECOVERY) is None


async def test_expired_verification_token_reads_as_missing():
    repo = InMemoryVerificationTokensRepository()
    token = VerificationToken.create(
        user_id=UniqueEntityID(),
        type=TokenType.EMAIL_VERIFY,
        expires_at=utcnow() - timedelta(seconds=1),
    )
    await repo.save(token)
    assert await repo.get(token.token, TokenType.EMAIL_VERIFY) is None
    assert repo.items == {}


async def test_revoke_verification_tokens_by_user():
    repo = InMemoryVerificationTokensRepository()
    user_id, other_id = UniqueEntityID(), UniqueEntityID()
    mine = VerificationToken.create(user_id=user_id, type=TokenType.EMAIL_VERIFY)
    theirs = VerificationToken.create(user_id=other_id, type=TokenType.EMAIL_VERIFY)
    await repo.save(mine)
    await repo.save(theirs)

    await repo.revoke_tokens_by_user_id(user_id)

    assert await repo.get(mine.token, TokenType.EMAIL_VERIFY) is None
    assert await repo.get(theirs.token, TokenType.EMAIL_VERIFY) is theirs


async def test_tasks_listed_newest_first_with_paging():
    repo = InMemoryTasksRepository()
    project_id = UniqueEntityID()
    now = utcnow()
    for i in range(3):
        await repo.create(
            Task.create(
                title=f"Task {i}",
                project_id=project_id,
                created_by=UniqueEntityID(),
                created_at=now + timedelta(seconds=i),
            )
        )
    await repo.create(Task.create(title="Elsewhere", project_id=UniqueEntityID(), created_by=UniqueEntityID()))

    page = await repo.find_many_by_project(project_id, limit=2)
    assert [t.title for t in page] == ["Task 2", "Task 1"]
    rest = await repo.find_many_by_project(project_id, limit=2, offset=2)
    assert [t.title for t in rest] == ["Task 0"]


async def test_email_queue_dequeues_by_priority_then_fifo():
    queue = InMemoryEmailQueue()
    await queue.enqueue("low", EmailPriority.LOW)
    await queue.enqueue("medium-1", EmailPriority.MEDIUM)
    await queue.enqueue("urgent", EmailPriority.URGENT)
    await queue.enqueue("medium-2", EmailPriority.MEDIUM)

    assert await queue.size() == 4
    order = [(await queue.dequeue()).email_request_id for _ in range(4)]
    assert order == ["urgent", "medium-1", "medium-2", "low"]
    assert await queue.dequeue() is None


async def test_email_queue_delayed_entry_rejoins_at_its_priority():
    queue = InMemoryEmailQueue()
    await queue.enqueue("retry", EmailPriority.URGENT, attempt=1, delay=60)
    await queue.enqueue("low", EmailPriority.LOW)

    assert await queue.size() == 2
    assert (await queue.dequeue()).email_request_id == "low"
    assert await queue.dequeue() is None

    _ready_at, entry = queue.delayed[0]
    queue.delayed = [(0.0, entry)]
    assert await queue.dequeue() == QueuedEmail("retry", EmailPriority.URGENT, attempt=1)


async def test_key_value_store_lists_are_newest_first():
    kv = InMemoryKeyValueStore()
    for value in ("a", "b", "c"):
        await kv.lpush("k", value)
    assert await kv.lrange("k") == ["c", "b", "a"]
    assert await kv.lrange("k", 0, 1) == ["c", "b"]
    assert await kv.lrange("missing") == []


async def test_file_storage_renames_and_signs():
    storage = InMemoryFileStorage()
    uploaded = await storage.upload("Me.PNG", "image/png", b"\x89PNG")

    assert uploaded.url.endswith(".png")
    assert uploaded.url in storage.files

    signed = await storage.get_signed_url(uploaded.url, expires_in=60)
    assert signed.url.startswith(f"memory://avatars/{uploaded.url}?expires=")
    assert signed.expires_at > utcnow()

    await storage.delete(uploaded.url)
    assert storage.files == {}
