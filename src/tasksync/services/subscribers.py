"""Domain event subscribers that turn account activity into emails.

Learn: registered once at startup (lifespan, CLI). Each handler looks the
recipient up through AuthUserService, picks a template and data, and hands
the rest to EmailRequestService, which persists and queues the request.
The worker sends it later, so a slow SMTP server never blocks sign-up.
"""

from typing import Any, Optional

import structlog

from tasksync.core.entities import UniqueEntityID
from tasksync.core.events import DomainEvents
from tasksync.domain.email_requests import (
    EmailEventType,
    EmailPriority,
    EmailTemplate,
)
from tasksync.domain.events import (
    EmailUpdateVerificationRequestedEvent,
    EmailVerificationRequestedEvent,
    PasswordRecoveryRequestedEvent,
    PasswordResetEvent,
    UserRegisteredEvent,
)
from tasksync.domain.users import User
from tasksync.ports.repositories import UsersRepository
from tasksync.ports.services import AuthUser, AuthUserService
from tasksync.services.email_request_service import EmailRequestService

logger = structlog.get_logger()


class RepositoryAuthUserService(AuthUserService):
    """AuthUserService backed by the users repository."""

    def __init__(self, users: UsersRepository):
        self.users = users

    async def get_user_for_email_delivery(self, user_id: UniqueEntityID) -> Optional[AuthUser]:
        user: Optional[User] = await self.users.find_by_id(user_id)
        if not user:
            return None
        return AuthUser(id=user.id, name=user.name, email=user.email)


class EmailNotificationSubscriber:
    def __init__(
        self,
        auth_users: AuthUserService,
        email_requests: EmailRequestService,
        app_url: str,
    ):
        self.auth_users = auth_users
        self.email_requests = email_requests
        self.app_url = app_url.rstrip("/")

    def setup(self) -> None:
        """Register every handler on DomainEvents."""
        DomainEvents.register(self.on_user_registered, UserRegisteredEvent.event_name())
        DomainEvents.register(
            self.on_email_verification_requested,
            EmailVerificationRequestedEvent.event_name(),
        )
        DomainEvents.register(
            self.on_email_update_verification_requested,
            EmailUpdateVerificationRequestedEvent.event_name(),
        )
        DomainEvents.register(
            self.on_password_recovery_requested,
            PasswordRecoveryRequestedEvent.event_name(),
        )
        DomainEvents.register(self.on_password_reset, PasswordResetEvent.event_name())

    # ─── Handlers ────────────────────────────────────────

    async def on_user_registered(self, event: UserRegisteredEvent) -> None:
        await self._send(
            event.user.id,
            EmailEventType.USER_REGISTERED,
            EmailTemplate.WELCOME,
            {},
        )

    async def on_email_verification_requested(self, event: EmailVerificationRequestedEvent) -> None:
        token = event.verification_token
        await self._send(
            token.user_id,
            EmailEventType.EMAIL_VERIFICATION,
            EmailTemplate.EMAIL_VERIFY,
            {"verification_link": self._link("verify-email", token.token)},
            priority=EmailPriority.HIGH,
        )

    async def on_email_update_verification_requested(
        self, event: EmailUpdateVerificationRequestedEvent
    ) -> None:
        token = event.verification_token
        await self._send(
            token.user_id,
            EmailEventType.EMAIL_UPDATE_VERIFICATION,
            EmailTemplate.UPDATE_EMAIL_VERIFY,
            {"verification_link": self._link("verify-email", token.token)},
            priority=EmailPriority.HIGH,
        )

    async def on_password_recovery_requested(self, event: PasswordRecoveryRequestedEvent) -> None:
        token = event.verification_token
        await self._send(
            token.user_id,
            EmailEventType.PASSWORD_RECOVERY,
            EmailTemplate.PASSWORD_RECOVERY,
            {"reset_link": self._link("reset-password", token.token)},
            priority=EmailPriority.URGENT,
        )

    async def on_password_reset(self, event: PasswordResetEvent) -> None:
        await self._send(
            event.user.id,
            EmailEventType.PASSWORD_RESET,
            EmailTemplate.PASSWORD_RESET,
            {},
            priority=EmailPriority.HIGH,
        )

    # ─── Helpers ─────────────────────────────────────────

    def _link(self, path: str, token: str) -> str:
        return f"{self.app_url}/{path}?token={token}"

    async def _send(
        self,
        user_id: UniqueEntityID,
        event_type: EmailEventType,
        template: EmailTemplate,
        data: dict[str, Any],
        priority: EmailPriority = EmailPriority.MEDIUM,
    ) -> None:
        recipient = await self.auth_users.get_user_for_email_delivery(user_id)
        if not recipient:
            logger.warning(
                "email_subscriber.recipient_missing",
                user_id=str(user_id),
                event_type=event_type.value,
            )
            return

        await self.email_requests.create(
            event_type=event_type,
            recipient_id=recipient.id,
            recipient_email=recipient.email,
            template_name=template,
            data={"name": recipient.name, **data},
            priority=priority,
        )
