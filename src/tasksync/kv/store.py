"""Redis-backed email queue and key-value store.

The queue is a sorted set. Scores put higher priorities first and keep
FIFO order inside a priority:

    score = (5 - priority_value) * 10**13 + enqueue_time_ms

so every urgent (4) id sorts before any high (3) id, and ZPOPMIN always
returns the oldest id of the highest waiting priority. Members are
`{email_request_id}:{attempt}`; the priority is read back from the score.

Retries wait in a second sorted set scored by the time they become ready
(`{priority}:{email_request_id}:{attempt}` members). dequeue() moves due
entries back into the main set first, so a backoff never blocks the jobs
queued behind it.
"""

import json
import time
from typing import Any, Optional

import redis.asyncio as aioredis

from tasksync.domain.email_requests import EmailPriority
from tasksync.ports.services import EmailQueue, KeyValueStore, QueuedEmail

EMAIL_QUEUE_KEY = "email:queue"
_PRIORITY_BAND = 10**13


def _now_ms() -> int:
    return int(time.time() * 1000)


class RedisEmailQueue(EmailQueue):
    def __init__(self, redis: aioredis.Redis, key: str = EMAIL_QUEUE_KEY):
        self.redis = redis
        self.key = key
        self.delayed_key = f"{key}:delayed"

    async def enqueue(
        self,
        email_request_id: str,
        priority: EmailPriority,
        attempt: int = 0,
        delay: float = 0.0,
    ) -> None:
        priority = EmailPriority(priority)
        member = f"{email_request_id}:{attempt}"
        if delay > 0:
            ready_at = _now_ms() + int(delay * 1000)
            await self.redis.zadd(self.delayed_key, {f"{priority.value}:{member}": ready_at})
        else:
            await self.redis.zadd(self.key, {member: self._score(priority)})

    async def dequeue(self) -> Optional[QueuedEmail]:
        await self._promote_due()
        popped = await self.redis.zpopmin(self.key, 1)
        if not popped:
            return None
        member, score = popped[0]
        email_request_id, _, attempt = member.rpartition(":")
        band = int(score // _PRIORITY_BAND)
        return QueuedEmail(
            email_request_id=email_request_id,
            priority=EmailPriority.from_queue_value(5 - band),
            attempt=int(attempt),
        )

    async def size(self) -> int:
        return await self.redis.zcard(self.key) + await self.redis.zcard(self.delayed_key)

    async def _promote_due(self) -> None:
        due = await self.redis.zrangebyscore(self.delayed_key, "-inf", _now_ms())
        for member in due:
            # zrem returns 0 when another worker promoted it first
            if await self.redis.zrem(self.delayed_key, member):
                priority, _, entry = member.partition(":")
                await self.redis.zadd(self.key, {entry: self._score(EmailPriority(priority))})

    @staticmethod
    def _score(priority: EmailPriority) -> int:
        band = 5 - priority.queue_value
        return band * _PRIORITY_BAND + _now_ms()


class RedisKeyValueStore(KeyValueStore):
    def __init__(self, redis: aioredis.Redis):
        self.redis = redis

    async def lpush(self, key: str, value: str) -> None:
        await self.redis.lpush(key, value)

    async def lrange(self, key: str, start: int = 0, end: int = -1) -> list[str]:
        return await self.redis.lrange(key, start, end)

    async def publish(self, channel: str, message: dict[str, Any]) -> None:
        await self.redis.publish(channel, json.dumps(message))
