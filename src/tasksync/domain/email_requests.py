"""EmailRequest entity: one templated email on its way to a recipient.

Status flow:
    pending ──► processing ──► sent
        └──────────┴─────────► failed   (terminal)
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from tasksync.core.clock import utcnow
from tasksync.core.entities import Entity, UniqueEntityID
from tasksync.core.errors import UseCaseError


class EmailStatusTransitionError(UseCaseError, ValueError):
    """Raised when a request is asked to move past a terminal status."""


class EmailStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SENT = "sent"
    FAILED = "failed"

    def next_status(self) -> "EmailStatus":
        if self is EmailStatus.PENDING:
            return EmailStatus.PROCESSING
        if self is EmailStatus.PROCESSING:
            return EmailStatus.SENT
        raise EmailStatusTransitionError(f"Email request is already {self.value}")


class EmailPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def queue_value(self) -> int:
        """Higher is picked up first by the email worker."""
        return _QUEUE_VALUES[self]

    @classmethod
    def from_queue_value(cls, value: int) -> "EmailPriority":
        for priority, queue_value in _QUEUE_VALUES.items():
            if queue_value == value:
                return priority
        raise ValueError(f"Unknown queue priority {value}")


_QUEUE_VALUES = {
    EmailPriority.URGENT: 4,
    EmailPriority.HIGH: 3,
    EmailPriority.MEDIUM: 2,
    EmailPriority.LOW: 1,
}


class EmailEventType(str, Enum):
    EMAIL_VERIFICATION = "email_verification"
    EMAIL_UPDATE_VERIFICATION = "email_update_verification"
    PASSWORD_RECOVERY = "password_recovery"
    PASSWORD_RESET = "password_reset"
    USER_REGISTERED = "user_registered"


class EmailTemplate(str, Enum):
    EMAIL_VERIFY = "email-verify"
    UPDATE_EMAIL_VERIFY = "update-email-verify"
    PASSWORD_RECOVERY = "password-recovery"
    PASSWORD_RESET = "password-reset"
    WELCOME = "welcome"


EMAIL_SUBJECTS: dict[EmailEventType, str] = {
    EmailEventType.EMAIL_VERIFICATION: "Verify your email",
    EmailEventType.EMAIL_UPDATE_VERIFICATION: "Verify your new email",
    EmailEventType.PASSWORD_RECOVERY: "Recover your password",
    EmailEventType.PASSWORD_RESET: "Your password was changed",
    EmailEventType.USER_REGISTERED: "Welcome to TaskSync",
}


@dataclass
class EmailRequestProps:
    event_type: EmailEventType
    recipient_id: UniqueEntityID
    recipient_email: str
    subject: str
    template_name: EmailTemplate
    data: dict[str, Any] = field(default_factory=dict)
    status: EmailStatus = EmailStatus.PENDING
    priority: EmailPriority = EmailPriority.MEDIUM
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None


class EmailRequest(Entity[EmailRequestProps]):
    @property
    def event_type(self) -> EmailEventType:
        return self.props.event_type

    @property
    def recipient_id(self) -> UniqueEntityID:
        return self.props.recipient_id

    @property
    def recipient_email(self) -> str:
        return self.props.recipient_email

    @property
    def subject(self) -> str:
        return self.props.subject

    @property
    def template_name(self) -> EmailTemplate:
        return self.props.template_name

    @property
    def data(self) -> dict[str, Any]:
        return dict(self.props.data)

    @property
    def status(self) -> EmailStatus:
        return self.props.status

    @property
    def priority(self) -> EmailPriority:
        return self.props.priority

    @property
    def created_at(self) -> datetime:
        return self.props.created_at

    @property
    def updated_at(self) -> Optional[datetime]:
        return self.props.updated_at

    def touch(self) -> None:
        self.props.updated_at = utcnow()

    def advance_status(self) -> EmailStatus:
        self.props.status = self.props.status.next_status()
        self.touch()
        return self.props.status

    def mark_as_sent(self) -> None:
        self.props.status = EmailStatus.SENT
        self.touch()

    def mark_as_failed(self) -> None:
        self.props.status = EmailStatus.FAILED
        self.touch()

    @classmethod
    def create(
        cls,
        event_type: EmailEventType,
        recipient_id: UniqueEntityID,
        recipient_email: str,
        template_name: EmailTemplate,
        data: Optional[dict[str, Any]] = None,
        subject: Optional[str] = None,
        status: EmailStatus = EmailStatus.PENDING,
        priority: EmailPriority = EmailPriority.MEDIUM,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        id: Optional[UniqueEntityID] = None,
    ) -> "EmailRequest":
        event_type = EmailEventType(event_type)
        return cls(
            EmailRequestProps(
                event_type=event_type,
                recipient_id=recipient_id,
                recipient_email=recipient_email,
                subject=subject or EMAIL_SUBJECTS[event_type],
                template_name=EmailTemplate(template_name),
                data=dict(data or {}),
                status=EmailStatus(status),
                priority=EmailPriority(priority),
                created_at=created_at or utcnow(),
                updated_at=updated_at,
            ),
            id,
        )
