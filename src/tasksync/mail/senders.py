"""Email senders.

SmtpEmailSender talks to a real SMTP server. smtplib is blocking, so the
send runs on a worker thread. LoggingEmailSender is used when no SMTP host
is configured (local development): it logs the message instead.
"""

import asyncio
import smtplib
from email.message import EmailMessage

import structlog

from tasksync.ports.services import EmailSender, OutgoingEmail

logger = structlog.get_logger()


class SmtpEmailSender(EmailSender):
    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def _build_message(self, email: OutgoingEmail) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = email.to
        msg["Subject"] = email.subject
        msg.set_content(email.text or "This email requires an HTML-capable client.")
        msg.add_alternative(email.html, subtype="html")
        return msg

    def _send_sync(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.username:
                server.login(self.username, self.password)
            server.send_message(msg)

    async def send(self, email: OutgoingEmail) -> None:
        await asyncio.to_thread(self._send_sync, self._build_message(email))
        logger.info("mail.sent", to=email.to, subject=email.subject)


class LoggingEmailSender(EmailSender):
    async def send(self, email: OutgoingEmail) -> None:
        logger.info(
            "mail.logged",
            to=email.to,
            subject=email.subject,
            html_length=len(email.html),
        )
