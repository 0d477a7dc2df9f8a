"""Test fixtures: an in-memory container behind the real app.

Learn: Testing pattern for the layered app:

1. Every repository and port has an in-memory adapter, so a test gets a
   fresh, fully wired Container with no Postgres, Redis, SMTP or Supabase.
2. The API reaches services only through api.deps.get_container, so
   overriding that single dependency swaps the whole backend.
3. DomainEvents is a process-wide registry. It is reset after every test
   so handlers registered by one test never fire in another.
"""

import os

os.environ.setdefault("TASKSYNC_ENVIRONMENT", "test")
os.environ.setdefault("TASKSYNC_PERSISTENCE_BACKEND", "memory")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from tasksync.auth.jwt import JwtEncryptor
from tasksync.config import settings
from tasksync.container import Container
from tasksync.core.events import DomainEvents
from tasksync.repositories.memory import (
    InMemoryAuthTokensRepository,
    InMemoryEmailQueue,
    InMemoryEmailRequestsRepository,
    InMemoryFileStorage,
    InMemoryKeyValueStore,
    InMemoryTasksRepository,
    InMemoryUsersRepository,
    InMemoryVerificationTokensRepository,
)

from tests.fakes import FakeEmailSender, FakeHasher
from tests.helpers import login, sign_up


@pytest.fixture(autouse=True)
def reset_domain_events():
    """Start and end every test with an empty event registry."""
    DomainEvents.clear_handlers()
    DomainEvents.clear_marked_aggregates()
    DomainEvents.should_run = True
    yield
    DomainEvents.clear_handlers()
    DomainEvents.clear_marked_aggregates()
    DomainEvents.should_run = True


@pytest.fixture()
def email_sender():
    return FakeEmailSender()


@pytest.fixture()
def container(email_sender):
    """A fully in-memory container. Subscribers are NOT registered."""
    return Container(
        users=InMemoryUsersRepository(),
        auth_tokens=InMemoryAuthTokensRepository(),
        verification_tokens=InMemoryVerificationTokensRepository(),
        email_requests=InMemoryEmailRequestsRepository(),
        tasks=InMemoryTasksRepository(),
        hasher=FakeHasher(),
        encryptor=JwtEncryptor(),
        storage=InMemoryFileStorage(),
        email_queue=InMemoryEmailQueue(),
        email_sender=email_sender,
        kv=InMemoryKeyValueStore(),
        config=settings,
    )


@pytest_asyncio.fixture()
async def client(container):
    """HTTP client against the real app, backed by the in-memory container.

    Learn: ASGITransport does not run the lifespan, so the email
    subscribers are registered here the way the lifespan would.
    """
    from tasksync.api.deps import get_container
    from tasksync.main import app

    app.dependency_overrides[get_container] = lambda: container
    container.register_subscribers()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def auth_headers(client):
    """A registered user's Bearer header."""
    await sign_up(client)
    return await login(client)
