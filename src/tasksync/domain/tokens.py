"""Session and verification tokens.

AuthToken is the server-side half of a session: the refresh token issued
at login, stored per user with a TTL that mirrors its expiry.

VerificationToken backs the email confirmation and password recovery
links. Only its sha256 hash is compared; the raw value travels in the
link and in the domain event that triggers the email.
"""

import hashlib
import hmac
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from tasksync.core.clock import utcnow
from tasksync.core.entities import AggregateRoot, Entity, UniqueEntityID
from tasksync.domain.events import (
    EmailUpdateVerificationRequestedEvent,
    EmailVerificationRequestedEvent,
    PasswordRecoveryRequestedEvent,
)

VERIFICATION_TOKEN_TTL = timedelta(hours=24)


def hash_token(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


# ═══════════════════════════════════════════════════════════
# AuthToken
# ═══════════════════════════════════════════════════════════


@dataclass
class AuthTokenProps:
    user_id: UniqueEntityID
    refresh_token: str
    expires_at: datetime
    created_at: datetime = field(default_factory=utcnow)


class AuthToken(Entity[AuthTokenProps]):
    @property
    def user_id(self) -> UniqueEntityID:
        return self.props.user_id

    @property
    def refresh_token(self) -> str:
        return self.props.refresh_token

    @property
    def expires_at(self) -> datetime:
        return self.props.expires_at

    @property
    def created_at(self) -> datetime:
        return self.props.created_at

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) > self.props.expires_at

    @classmethod
    def create(
        cls,
        user_id: UniqueEntityID,
        refresh_token: str,
        expires_at: datetime,
        created_at: Optional[datetime] = None,
        id: Optional[UniqueEntityID] = None,
    ) -> "AuthToken":
        return cls(
            AuthTokenProps(
                user_id=user_id,
                refresh_token=refresh_token,
                expires_at=expires_at,
                created_at=created_at or utcnow(),
            ),
            id,
        )


# ═══════════════════════════════════════════════════════════
# VerificationToken
# ═══════════════════════════════════════════════════════════


class TokenType(str, Enum):
    EMAIL_VERIFY = "email:verify"
    EMAIL_UPDATE_VERIFY = "email:update:verify"
    PASSWORD_RECOVERY = "password:recovery"
    PASSWORD_RESET = "password:reset"


# password:reset tokens are bookkeeping only; nothing is emailed for them.
_EVENTS_BY_TYPE = {
    TokenType.EMAIL_VERIFY: EmailVerificationRequestedEvent,
    TokenType.EMAIL_UPDATE_VERIFY: EmailUpdateVerificationRequestedEvent,
    TokenType.PASSWORD_RECOVERY: PasswordRecoveryRequestedEvent,
}


@dataclass
class VerificationTokenProps:
    user_id: UniqueEntityID
    token: str
    token_hash: str
    type: TokenType
    expires_at: datetime
    created_at: datetime = field(default_factory=utcnow)


class VerificationToken(AggregateRoot[VerificationTokenProps]):
    @property
    def user_id(self) -> UniqueEntityID:
        return self.props.user_id

    @property
    def token(self) -> str:
        return self.props.token

    @property
    def token_hash(self) -> str:
        return self.props.token_hash

    @property
    def type(self) -> TokenType:
        return self.props.type

    @property
    def expires_at(self) -> datetime:
        return self.props.expires_at

    @property
    def created_at(self) -> datetime:
        return self.props.created_at

    @property
    def key(self) -> str:
        """Composite lookup key: `type:token`."""
        return f"{self.props.type.value}:{self.props.token}"

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) > self.props.expires_at

    def verify_token(self, raw_token: str) -> bool:
        return hmac.compare_digest(hash_token(raw_token), self.props.token_hash)

    def is_valid_token(self, raw_token: str) -> bool:
        return self.verify_token(raw_token) and not self.is_expired()

    @classmethod
    def create(
        cls,
        user_id: UniqueEntityID,
        type: TokenType,
        expires_at: Optional[datetime] = None,
        id: Optional[UniqueEntityID] = None,
    ) -> "VerificationToken":
        """Issue a fresh random token. New tokens raise the event for their type."""
        raw = str(uuid.uuid4())
        now = utcnow()
        verification = cls(
            VerificationTokenProps(
                user_id=user_id,
                token=raw,
                token_hash=hash_token(raw),
                type=TokenType(type),
                expires_at=expires_at or now + VERIFICATION_TOKEN_TTL,
                created_at=now,
            ),
            id,
        )
        event_cls = _EVENTS_BY_TYPE.get(verification.type)
        if id is None and event_cls is not None:
            verification.add_domain_event(event_cls(verification))
        return verification
