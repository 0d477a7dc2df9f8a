"""Session service: login, token renewal, logout, revoke-all.

Learn: a session is two tokens. The short-lived access token goes to the
client (cookie); the refresh token stays in the auth token store, one per
user, expiring after 7 days. Renewal trades the stored refresh token for a
fresh pair, so logging out anywhere (deleting the stored token) ends the
session at the next renewal.
"""

from datetime import timedelta

import structlog

from tasksync.core.clock import utcnow
from tasksync.core.entities import UniqueEntityID
from tasksync.core.errors import (
    ForbiddenActionError,
    InvalidCredentialsError,
    RefreshTokenExpiredError,
    ResourceNotFoundError,
)
from tasksync.core.observability import with_observability
from tasksync.domain.tokens import AuthToken
from tasksync.ports.repositories import (
    AuthTokensRepository,
    UsersRepository,
    VerificationTokensRepository,
)
from tasksync.ports.services import Encryptor, Hasher

logger = structlog.get_logger()

REFRESH_TOKEN_TTL = timedelta(days=7)


class SessionService:
    def __init__(
        self,
        users: UsersRepository,
        auth_tokens: AuthTokensRepository,
        verification_tokens: VerificationTokensRepository,
        hasher: Hasher,
        encryptor: Encryptor,
        refresh_token_ttl: timedelta = REFRESH_TOKEN_TTL,
    ):
        self.users = users
        self.auth_tokens = auth_tokens
        self.verification_tokens = verification_tokens
        self.hasher = hasher
        self.encryptor = encryptor
        self.refresh_token_ttl = refresh_token_ttl

    @with_observability("authenticate_session", identifier="email")
    async def authenticate(self, email: str, password: str) -> str:
        """Check credentials and open a session. Returns the access token."""
        user = await self.users.find_by_email(email)
        if not user:
            raise InvalidCredentialsError()

        if not await self.hasher.compare(password, user.password_hash):
            raise InvalidCredentialsError()

        return await self._issue_tokens(user.id)

    @with_observability("renew_token", identifier="user_id")
    async def renew(self, user_id: UniqueEntityID) -> str:
        """Swap the stored refresh token for a new pair. Returns the access token."""
        user = await self.users.find_by_id(user_id)
        if not user:
            raise ResourceNotFoundError("User not found")

        auth_token = await self.auth_tokens.find_by_user_id(user_id)
        if not auth_token:
            raise RefreshTokenExpiredError()

        if auth_token.is_expired():
            await self.auth_tokens.delete(auth_token)
            raise RefreshTokenExpiredError()

        if auth_token.user_id != user.id:
            raise ForbiddenActionError("Refresh token belongs to another user")

        await self.auth_tokens.delete(auth_token)
        return await self._issue_tokens(user.id)

    @with_observability("terminate_session", identifier="user_id")
    async def terminate(self, user_id: UniqueEntityID) -> None:
        auth_token = await self.auth_tokens.find_by_user_id(user_id)
        if auth_token:
            await self.auth_tokens.delete(auth_token)

    @with_observability("revoke_tokens", identifier="user_id")
    async def revoke_all(self, user_id: UniqueEntityID) -> None:
        """Drop every session and every pending verification link."""
        await self.auth_tokens.revoke_tokens_by_user_id(user_id)
        await self.verification_tokens.revoke_tokens_by_user_id(user_id)
        logger.info("sessions.revoked", user_id=str(user_id))

    async def _issue_tokens(self, user_id: UniqueEntityID) -> str:
        access_token = self.encryptor.encrypt({"sub": user_id.value, "type": "access"})
        refresh_token = self.encryptor.encrypt(
            {"sub": user_id.value, "type": "refresh"},
            expires_in=self.refresh_token_ttl,
        )
        await self.auth_tokens.create(
            AuthToken.create(
                user_id=user_id,
                refresh_token=refresh_token,
                expires_at=utcnow() + self.refresh_token_ttl,
            )
        )
        return access_token
