"""User aggregate.

Learn: setters are the only way to mutate a user, and each one stamps
updated_at via touch(). Events are recorded here and dispatched by the
UsersRepository after create/save, so "welcome" emails only go out for
users that actually made it to the database.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from tasksync.core.clock import utcnow
from tasksync.core.entities import AggregateRoot, UniqueEntityID
from tasksync.domain.events import PasswordResetEvent, UserRegisteredEvent


@dataclass
class UserProps:
    name: str
    email: str
    password_hash: str
    avatar_url: Optional[str] = None
    email_verified: bool = False
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None


class User(AggregateRoot[UserProps]):
    @property
    def name(self) -> str:
        return self.props.name

    @name.setter
    def name(self, value: str) -> None:
        self.props.name = value
        self.touch()

    @property
    def email(self) -> str:
        return self.props.email

    @email.setter
    def email(self, value: str) -> None:
        self.props.email = value
        self.touch()

    @property
    def password_hash(self) -> str:
        return self.props.password_hash

    @password_hash.setter
    def password_hash(self, value: str) -> None:
        self.props.password_hash = value
        self.touch()

    @property
    def avatar_url(self) -> Optional[str]:
        return self.props.avatar_url

    @avatar_url.setter
    def avatar_url(self, value: Optional[str]) -> None:
        self.props.avatar_url = value
        self.touch()

    @property
    def email_verified(self) -> bool:
        return self.props.email_verified

    @property
    def created_at(self) -> datetime:
        return self.props.created_at

    @property
    def updated_at(self) -> Optional[datetime]:
        return self.props.updated_at

    def touch(self) -> None:
        self.props.updated_at = utcnow()

    def verify_email(self) -> None:
        if not self.props.email_verified:
            self.props.email_verified = True
            self.touch()

    def reset_email_verification(self) -> None:
        self.props.email_verified = False
        self.touch()

    def reset_password(self, password_hash: str) -> None:
        self.props.password_hash = password_hash
        self.touch()
        self.add_domain_event(PasswordResetEvent(self))

    @classmethod
    def create(
        cls,
        name: str,
        email: str,
        password_hash: str,
        avatar_url: Optional[str] = None,
        email_verified: bool = False,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        id: Optional[UniqueEntityID] = None,
    ) -> "User":
        """Build a user. Only brand-new users (no id) raise UserRegisteredEvent."""
        user = cls(
            UserProps(
                name=name,
                email=email,
                password_hash=password_hash,
                avatar_url=avatar_url,
                email_verified=email_verified,
                created_at=created_at or utcnow(),
                updated_at=updated_at,
            ),
            id,
        )
        if id is None:
            user.add_domain_event(UserRegisteredEvent(user))
        return user
