"""Domain events raised by the user and verification token aggregates.

Handlers are registered by class name (see services.subscribers). Events
carry the aggregate itself so subscribers can read the raw verification
token, which is never persisted in clear outside the token store.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from tasksync.core.clock import utcnow
from tasksync.core.events import DomainEvent

if TYPE_CHECKING:
    from tasksync.core.entities import UniqueEntityID
    from tasksync.domain.tokens import VerificationToken
    from tasksync.domain.users import User


# ─── User events ─────────────────────────────────────


@dataclass
class UserRegisteredEvent(DomainEvent):
    user: "User"
    occurred_at: datetime = field(default_factory=utcnow)

    def get_aggregate_id(self) -> "UniqueEntityID":
        return self.user.id


@dataclass
class PasswordResetEvent(DomainEvent):
    user: "User"
    occurred_at: datetime = field(default_factory=utcnow)

    def get_aggregate_id(self) -> "UniqueEntityID":
        return self.user.id


# ─── Verification token events ───────────────────────


@dataclass
class EmailVerificationRequestedEvent(DomainEvent):
    verification_token: "VerificationToken"
    occurred_at: datetime = field(default_factory=utcnow)

    def get_aggregate_id(self) -> "UniqueEntityID":
        return self.verification_token.id


@dataclass
class EmailUpdateVerificationRequestedEvent(DomainEvent):
    verification_token: "VerificationToken"
    occurred_at: datetime = field(default_factory=utcnow)

    def get_aggregate_id(self) -> "UniqueEntityID":
        return self.verification_token.id


@dataclass
class PasswordRecoveryRequestedEvent(DomainEvent):
    verification_token: "VerificationToken"
    occurred_at: datetime = field(default_factory=utcnow)

    def get_aggregate_id(self) -> "UniqueEntityID":
        return self.verification_token.id
