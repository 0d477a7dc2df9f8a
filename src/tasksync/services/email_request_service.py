"""Email request service: record an email and queue it for the worker."""

from typing import Any, Literal, Optional

import structlog

from tasksync.core.entities import UniqueEntityID
from tasksync.core.errors import ResourceNotFoundError
from tasksync.core.observability import with_observability
from tasksync.domain.email_requests import (
    EmailEventType,
    EmailPriority,
    EmailRequest,
    EmailTemplate,
)
from tasksync.ports.repositories import EmailRequestsRepository
from tasksync.ports.services import EmailQueue

logger = structlog.get_logger()

StatusTransition = Literal["progress", "sent", "failed"]


class EmailRequestService:
    def __init__(self, email_requests: EmailRequestsRepository, queue: EmailQueue):
        self.email_requests = email_requests
        self.queue = queue

    @with_observability("create_email_request", identifier="recipient_id")
    async def create(
        self,
        event_type: EmailEventType,
        recipient_id: UniqueEntityID,
        recipient_email: str,
        template_name: EmailTemplate,
        data: Optional[dict[str, Any]] = None,
        priority: EmailPriority = EmailPriority.MEDIUM,
        subject: Optional[str] = None,
    ) -> EmailRequest:
        email_request = EmailRequest.create(
            event_type=event_type,
            recipient_id=recipient_id,
            recipient_email=recipient_email,
            template_name=template_name,
            data=data,
            priority=priority,
            subject=subject,
        )
        await self.email_requests.create(email_request)
        await self.queue.enqueue(email_request.id.value, email_request.priority)

        logger.info(
            "email_requests.queued",
            email_request_id=email_request.id.value,
            event_type=email_request.event_type.value,
            priority=email_request.priority.value,
        )
        return email_request

    @with_observability("get_email_request")
    async def get(self, id: UniqueEntityID) -> EmailRequest:
        email_request = await self.email_requests.find_by_id(id)
        if not email_request:
            raise ResourceNotFoundError("Email request not found")
        return email_request

    @with_observability("update_email_request_status")
    async def update_status(
        self, id: UniqueEntityID, transition: StatusTransition
    ) -> EmailRequest:
        """Apply a status transition.

        progress: pending -> processing -> sent (EmailStatusTransitionError past that)
        sent / failed: set directly
        """
        email_request = await self.get(id)

        if transition == "progress":
            email_request.advance_status()
        elif transition == "sent":
            email_request.mark_as_sent()
        elif transition == "failed":
            email_request.mark_as_failed()
        else:
            raise ValueError(f"Unknown transition: {transition}")

        await self.email_requests.save(email_request)
        return email_request
