"""Email worker: sends queued email requests in the background.

Learn: EmailRequestService.create() stores the request and pushes its id
onto the priority queue. This worker pops entries (urgent first) and sends:

  pending → processing → sent
                 └─────► failed → retry ×3 (backoff 1s, 2s, 3s) → sent | dead letter

A failed attempt is not retried inline. The entry goes back on the queue
with its priority, the next attempt number and a delay, so the jobs
behind it keep flowing while it waits. Storage or queue errors while
handling an entry (Postgres down, Redis timeout) count as a failed
attempt too, so an id is never dropped: it is retried or dead-lettered.

Every final outcome is published on the `email:status` channel so other
processes (dashboards, tests) can follow delivery. Ids that exhaust their
retries are pushed onto the `email:dlq` list for inspection (`tasksync dlq`).

Delivery is at-least-once: if the send succeeds but recording it fails,
the retry sends again.

Runs as a background task in the FastAPI lifespan, or standalone via
`tasksync worker` for scaling.
"""

import asyncio
from typing import Optional

import structlog

from tasksync.core.entities import UniqueEntityID
from tasksync.domain.email_requests import EmailRequest, EmailStatus
from tasksync.mail.templates import EmailTemplateRenderer
from tasksync.observability.metrics import EMAIL_JOBS, QUEUE_SIZE
from tasksync.ports.repositories import EmailRequestsRepository
from tasksync.ports.services import (
    EmailQueue,
    EmailSender,
    KeyValueStore,
    OutgoingEmail,
    QueuedEmail,
)

logger = structlog.get_logger()

DEAD_LETTER_KEY = "email:dlq"
STATUS_CHANNEL = "email:status"
QUEUE_NAME = "email"


class EmailQueueWorker:
    """Background worker that drains the email queue.

    Usage:
        worker = EmailQueueWorker(...)
        asyncio.create_task(worker.run_loop())
    """

    def __init__(
        self,
        email_requests: EmailRequestsRepository,
        queue: EmailQueue,
        sender: EmailSender,
        renderer: EmailTemplateRenderer,
        kv: KeyValueStore,
        poll_interval: float = 1.0,
        retry_backoff: float = 1.0,
        max_retries: int = 3,
    ):
        self.email_requests = email_requests
        self.queue = queue
        self.sender = sender
        self.renderer = renderer
        self.kv = kv
        self.poll_interval = poll_interval
        self.retry_backoff = retry_backoff
        self.max_retries = max_retries
        self._running = False

    # ─── Loop ────────────────────────────────────────────

    async def run_loop(self) -> None:
        """Main worker loop: drain the queue, then sleep."""
        self._running = True
        logger.info("email_worker.started", poll_interval=self.poll_interval)

        while self._running:
            try:
                await self.drain()
            except Exception:
                logger.exception("email_worker.error")
            await asyncio.sleep(self.poll_interval)

    async def drain(self) -> int:
        """Handle ready entries until none are left. Returns how many ran.

        Entries still waiting out a retry delay stay queued for a later drain.
        """
        processed = 0
        while True:
            job = await self.queue.dequeue()
            if job is None:
                break
            await self.process(job)
            processed += 1

        QUEUE_SIZE.labels(queue=QUEUE_NAME).set(await self.queue.size())
        return processed

    def stop(self) -> None:
        """Signal the worker to stop."""
        self._running = False
        logger.info("email_worker.stopping")

    # ─── Job ─────────────────────────────────────────────

    async def process(self, job: QueuedEmail) -> bool:
        """Make one delivery attempt. Returns True when the request ends up sent."""
        log = logger.bind(email_request_id=job.email_request_id, attempt=job.attempt)

        try:
            email_request = await self.email_requests.find_by_id(
                UniqueEntityID(job.email_request_id)
            )
            if not email_request:
                log.warning("email_worker.request_missing")
                return False

            if email_request.status is EmailStatus.SENT:
                log.info("email_worker.already_sent")
                return True

            await self._deliver(email_request)
        except Exception as e:
            EMAIL_JOBS.labels(result="failed").inc()
            log.warning("email_worker.attempt_failed", error=str(e))
            await self._retry_later(job)
            return False

        EMAIL_JOBS.labels(result="sent").inc()
        log.info("email_worker.sent", template=email_request.template_name.value)
        await self._publish(job.email_request_id, sent=True)
        return True

    async def _deliver(self, email_request: EmailRequest) -> None:
        if email_request.status is EmailStatus.PENDING:
            email_request.advance_status()
            await self.email_requests.save(email_request)

        try:
            await self.sender.send(self._build(email_request))
        except Exception:
            email_request.mark_as_failed()
            await self.email_requests.save(email_request)
            raise

        email_request.mark_as_sent()
        await self.email_requests.save(email_request)

    async def _retry_later(self, job: QueuedEmail) -> None:
        log = logger.bind(email_request_id=job.email_request_id)

        if job.attempt < self.max_retries:
            attempt = job.attempt + 1
            await self.queue.enqueue(
                job.email_request_id,
                job.priority,
                attempt=attempt,
                delay=self.retry_backoff * attempt,
            )
            EMAIL_JOBS.labels(result="retried").inc()
            log.info("email_worker.retry_scheduled", attempt=attempt)
            return

        await self.kv.lpush(DEAD_LETTER_KEY, job.email_request_id)
        EMAIL_JOBS.labels(result="dead_lettered").inc()
        log.error("email_worker.dead_lettered", attempts=job.attempt + 1)
        await self._publish(job.email_request_id, sent=False)

    async def _publish(self, email_request_id: str, sent: bool) -> None:
        await self.kv.publish(
            STATUS_CHANNEL,
            {
                "event": "email_sent" if sent else "email_failed",
                "email_request_id": email_request_id,
            },
        )

    def _build(self, email_request: EmailRequest) -> OutgoingEmail:
        html = self.renderer.render(email_request.template_name.value, email_request.data)
        return OutgoingEmail(
            to=email_request.recipient_email,
            subject=email_request.subject,
            html=html,
        )


async def dead_lettered_ids(kv: KeyValueStore, limit: Optional[int] = None) -> list[str]:
    """Ids that exhausted their retries, newest first."""
    end = -1 if limit is None else limit - 1
    return await kv.lrange(DEAD_LETTER_KEY, 0, end)
