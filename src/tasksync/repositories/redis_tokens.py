"""Redis repositories for auth tokens and verification tokens.

Key layout:
    auth-token:{user_id}                    JSON AuthToken, TTL = time to expiry
    verification-token:{type}:{token}       JSON VerificationToken, TTL = time to expiry
    verification-tokens:user:{user_id}      SET of the keys above, for revocation

Learn: Redis TTLs do the expiry sweep for us. A session that nobody
renews simply disappears after 7 days; a confirmation link after 24h.
"""

import math
from typing import Optional

import redis.asyncio as aioredis

from tasksync.core.clock import utcnow
from tasksync.core.entities import UniqueEntityID
from tasksync.core.events import DomainEvents
from tasksync.core.observability import track_query
from tasksync.domain.tokens import AuthToken, TokenType, VerificationToken
from tasksync.ports.repositories import (
    AuthTokensRepository,
    VerificationTokensRepository,
)
from tasksync.repositories.mappers import AuthTokenMapper, VerificationTokenMapper

AUTH_TOKEN_PREFIX = "auth-token"
VERIFICATION_TOKEN_PREFIX = "verification-token"
VERIFICATION_USER_INDEX_PREFIX = "verification-tokens:user"


def _ttl_seconds(expires_at) -> int:
    """Seconds until expiry, at least 1 (Redis rejects non-positive EX)."""
    return max(1, math.ceil((expires_at - utcnow()).total_seconds()))


class RedisAuthTokensRepository(AuthTokensRepository):
    def __init__(self, redis: aioredis.Redis):
        self.redis = redis

    @staticmethod
    def _key(user_id: UniqueEntityID) -> str:
        return f"{AUTH_TOKEN_PREFIX}:{user_id.value}"

    @track_query("find_by_user_id", "auth_tokens")
    async def find_by_user_id(self, user_id: UniqueEntityID) -> Optional[AuthToken]:
        raw = await self.redis.get(self._key(user_id))
        return AuthTokenMapper.from_redis(raw) if raw else None

    @track_query("find_by_refresh_token", "auth_tokens")
    async def find_by_refresh_token(self, refresh_token: str) -> Optional[AuthToken]:
        async for key in self.redis.scan_iter(match=f"{AUTH_TOKEN_PREFIX}:*"):
            raw = await self.redis.get(key)
            if not raw:
                continue
            auth_token = AuthTokenMapper.from_redis(raw)
            if auth_token.refresh_token == refresh_token:
                return auth_token
        return None

    @track_query("create", "auth_tokens")
    async def create(self, auth_token: AuthToken) -> None:
        await self.redis.set(
            self._key(auth_token.user_id),
            AuthTokenMapper.to_redis(auth_token),
            ex=_ttl_seconds(auth_token.expires_at),
        )

    @track_query("delete", "auth_tokens")
    async def delete(self, auth_token: AuthToken) -> None:
        current = await self.find_by_user_id(auth_token.user_id)
        if current is not None and current.id == auth_token.id:
            await self.redis.delete(self._key(auth_token.user_id))

    @track_query("revoke_tokens_by_user_id", "auth_tokens")
    async def revoke_tokens_by_user_id(self, user_id: UniqueEntityID) -> None:
        await self.redis.delete(self._key(user_id))


class RedisVerificationTokensRepository(VerificationTokensRepository):
    def __init__(self, redis: aioredis.Redis):
        self.redis = redis

    @staticmethod
    def _key(type: TokenType, token: str) -> str:
        return f"{VERIFICATION_TOKEN_PREFIX}:{TokenType(type).value}:{token}"

    @staticmethod
    def _user_index(user_id: UniqueEntityID) -> str:
        return f"{VERIFICATION_USER_INDEX_PREFIX}:{user_id.value}"

    @track_query("get", "verification_tokens")
    async def get(self, token: str, type: TokenType) -> Optional[VerificationToken]:
        raw = await self.redis.get(self._key(type, token))
        if not raw:
            return None
        verification = VerificationTokenMapper.from_redis(raw)
        return None if verification.is_expired() else verification

    @track_query("save", "verification_tokens")
    async def save(self, verification_token: VerificationToken) -> None:
        key = self._key(verification_token.type, verification_token.token)
        ttl = _ttl_seconds(verification_token.expires_at)
        index = self._user_index(verification_token.user_id)

        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.set(key, VerificationTokenMapper.to_redis(verification_token), ex=ttl)
            pipe.sadd(index, key)
            pipe.expire(index, ttl)
            await pipe.execute()

        await DomainEvents.dispatch_events_for_aggregate(verification_token.id)

    @track_query("delete", "verification_tokens")
    async def delete(self, verification_token: VerificationToken) -> None:
        key = self._key(verification_token.type, verification_token.token)
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.delete(key)
            pipe.srem(self._user_index(verification_token.user_id), key)
            await pipe.execute()

    @track_query("revoke_tokens_by_user_id", "verification_tokens")
    async def revoke_tokens_by_user_id(self, user_id: UniqueEntityID) -> None:
        index = self._user_index(user_id)
        keys = await self.redis.smembers(index)
        if keys:
            await self.redis.delete(*keys)
        await self.redis.delete(index)
