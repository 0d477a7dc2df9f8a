"""Profile service: read and edit the current user, manage the avatar."""

import re
from datetime import timedelta
from typing import Optional

import structlog

from tasksync.core.clock import utcnow
from tasksync.core.entities import UniqueEntityID
from tasksync.core.errors import (
    EmailAlreadyInUseError,
    InvalidAvatarTypeError,
    ResourceInvalidError,
    ResourceNotFoundError,
)
from tasksync.core.observability import with_observability
from tasksync.domain.tokens import VERIFICATION_TOKEN_TTL, TokenType, VerificationToken
from tasksync.domain.users import User
from tasksync.ports.repositories import UsersRepository, VerificationTokensRepository
from tasksync.ports.services import FileStorage, Hasher, SignedUrl

logger = structlog.get_logger()

AVATAR_CONTENT_TYPE = re.compile(r"^image/(png|jpg|jpeg|webp)$")
AVATAR_URL = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)


class ProfileService:
    def __init__(
        self,
        users: UsersRepository,
        verification_tokens: VerificationTokensRepository,
        hasher: Hasher,
        storage: FileStorage,
        avatar_url_ttl_seconds: int = 24 * 3600,
        verification_token_ttl: timedelta = VERIFICATION_TOKEN_TTL,
    ):
        self.users = users
        self.verification_tokens = verification_tokens
        self.hasher = hasher
        self.storage = storage
        self.avatar_url_ttl_seconds = avatar_url_ttl_seconds
        self.verification_token_ttl = verification_token_ttl

    @with_observability("retrieve_profile", identifier="user_id")
    async def retrieve(self, user_id: UniqueEntityID) -> User:
        return await self._get_user(user_id)

    @with_observability("refine_profile", identifier="user_id")
    async def refine(
        self,
        user_id: UniqueEntityID,
        name: str,
        email: str,
        new_password: Optional[str] = None,
    ) -> User:
        """Update name/email/password.

        A new email address is unverified until the link sent to it is
        confirmed.
        """
        user = await self._get_user(user_id)

        email_changed = email != user.email
        if email_changed:
            owner = await self.users.find_by_email(email)
            if owner and owner.id != user.id:
                raise EmailAlreadyInUseError(email)
            user.reset_email_verification()

        if new_password:
            user.password_hash = await self.hasher.hash(new_password)

        user.name = name
        user.email = email
        await self.users.save(user)

        # Saved after the user so the email goes to the new address.
        if email_changed:
            await self.verification_tokens.save(
                VerificationToken.create(
                    user_id=user.id,
                    type=TokenType.EMAIL_UPDATE_VERIFY,
                    expires_at=utcnow() + self.verification_token_ttl,
                )
            )
        return user

    @with_observability("update_avatar", identifier="user_id")
    async def update_avatar(self, user_id: UniqueEntityID, avatar_url: str) -> User:
        if not AVATAR_URL.match(avatar_url):
            raise ResourceInvalidError("Avatar URL is not a valid http(s) URL")

        user = await self._get_user(user_id)
        user.avatar_url = avatar_url
        await self.users.save(user)
        return user

    @with_observability("upload_avatar", identifier="user_id")
    async def upload_avatar(
        self,
        user_id: UniqueEntityID,
        filename: str,
        content_type: str,
        body: bytes,
    ) -> User:
        """Store a new avatar and drop the previous one."""
        user = await self._get_user(user_id)

        if not AVATAR_CONTENT_TYPE.match(content_type or ""):
            raise InvalidAvatarTypeError(content_type)

        if user.avatar_url:
            await self.storage.delete(user.avatar_url)

        uploaded = await self.storage.upload(filename, content_type, body)
        user.avatar_url = uploaded.url
        await self.users.save(user)

        logger.info("profile.avatar_uploaded", user_id=str(user.id), path=uploaded.url)
        return user

    @with_observability("avatar_signed_url")
    async def avatar_signed_url(self, key: str) -> SignedUrl:
        return await self.storage.get_signed_url(key, expires_in=self.avatar_url_ttl_seconds)

    async def _get_user(self, user_id: UniqueEntityID) -> User:
        user = await self.users.find_by_id(user_id)
        if not user:
            raise ResourceNotFoundError("User not found")
        return user
