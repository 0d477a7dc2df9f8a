"""Account service: sign-up, email confirmation, password recovery.

Learn: none of these methods sends an email. They create users and
verification tokens; the repositories dispatch the resulting domain
events and services.subscribers turns them into queued email requests.
"""

from datetime import timedelta
from typing import Optional

import structlog

from tasksync.core.clock import utcnow
from tasksync.core.errors import (
    EmailAlreadyInUseError,
    EmailNotVerifiedError,
    ResourceGoneError,
    ResourceInvalidError,
    ResourceNotFoundError,
)
from tasksync.core.observability import with_observability
from tasksync.domain.tokens import VERIFICATION_TOKEN_TTL, TokenType, VerificationToken
from tasksync.domain.users import User
from tasksync.ports.repositories import UsersRepository, VerificationTokensRepository
from tasksync.ports.services import Hasher

logger = structlog.get_logger()


class AccountService:
    def __init__(
        self,
        users: UsersRepository,
        verification_tokens: VerificationTokensRepository,
        hasher: Hasher,
        verification_token_ttl: timedelta = VERIFICATION_TOKEN_TTL,
    ):
        self.users = users
        self.verification_tokens = verification_tokens
        self.hasher = hasher
        self.verification_token_ttl = verification_token_ttl

    # ─── Sign-up ─────────────────────────────────────────

    @with_observability("enroll_identity", identifier="email")
    async def enroll(self, name: str, email: str, password: str) -> User:
        """Register a user and send the verification link."""
        if await self.users.find_by_email(email):
            raise EmailAlreadyInUseError(email)

        user = User.create(
            name=name,
            email=email,
            password_hash=await self.hasher.hash(password),
        )
        await self.users.create(user)

        verification = self._issue_token(user, TokenType.EMAIL_VERIFY)
        await self.verification_tokens.save(verification)

        logger.info("accounts.enrolled", user_id=str(user.id))
        return user

    # ─── Email confirmation ──────────────────────────────

    @with_observability("confirm_email")
    async def confirm_email(self, token: str) -> User:
        """Consume an email:verify or email:update:verify token."""
        verification = await self.verification_tokens.get(token, TokenType.EMAIL_VERIFY)
        if not verification:
            verification = await self.verification_tokens.get(
                token, TokenType.EMAIL_UPDATE_VERIFY
            )

        user = await self._consume(verification, token)
        user.verify_email()
        await self.users.save(user)
        await self.verification_tokens.delete(verification)
        return user

    # ─── Password recovery ───────────────────────────────

    @with_observability("initiate_password_recovery", identifier="email")
    async def initiate_password_recovery(self, email: str) -> None:
        """Send a recovery link. Unknown emails succeed silently."""
        user = await self.users.find_by_email(email)
        if not user:
            return

        if not user.email_verified:
            raise EmailNotVerifiedError()

        await self.verification_tokens.save(
            self._issue_token(user, TokenType.PASSWORD_RECOVERY)
        )

    @with_observability("reset_password")
    async def reset_password(self, token: str, new_password: str) -> User:
        verification = await self.verification_tokens.get(
            token, TokenType.PASSWORD_RECOVERY
        )
        user = await self._consume(verification, token)

        user.reset_password(await self.hasher.hash(new_password))
        await self.users.save(user)
        await self.verification_tokens.delete(verification)
        return user

    def _issue_token(self, user: User, type: TokenType) -> VerificationToken:
        return VerificationToken.create(
            user_id=user.id,
            type=type,
            expires_at=utcnow() + self.verification_token_ttl,
        )

    async def _consume(self, verification: Optional[VerificationToken], token: str) -> User:
        """Shared token checks. Bad tokens are deleted before raising."""
        if not verification:
            raise ResourceNotFoundError("Verification token not found")

        if not verification.verify_token(token):
            await self.verification_tokens.delete(verification)
            raise ResourceInvalidError("Verification token is invalid")

        if verification.is_expired():
            await self.verification_tokens.delete(verification)
            raise ResourceGoneError("Verification token has expired")

        user = await self.users.find_by_id(verification.user_id)
        if not user:
            await self.verification_tokens.delete(verification)
            raise ResourceNotFoundError("User not found")

        return user
