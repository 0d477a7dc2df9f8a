"""App lifespan: startup wiring and a clean shutdown."""

import pytest

from tasksync.api.deps import get_container
from tasksync.kv import client as kv_client
from tasksync.main import app, lifespan


class ClosingRedis:
    def __init__(self):
        self.closed = 0

    async def ping(self):
        return True

    async def aclose(self):
        self.closed += 1


@pytest.fixture()
def lifespan_container(container):
    container.config = container.config.model_copy(update={"email_worker_enabled": False})
    container.redis = ClosingRedis()
    app.dependency_overrides[get_container] = lambda: container
    yield container
    app.dependency_overrides.clear()


async def test_redis_registered_during_lifespan_and_closed_once(lifespan_container):
    redis = lifespan_container.redis

    async with lifespan(app):
        assert kv_client.get_redis() is redis

    assert redis.closed == 1
    with pytest.raises(RuntimeError):
        kv_client.get_redis()
