"""Infrastructure ports: crypto, storage, queueing, mail, key-value."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from tasksync.core.entities import UniqueEntityID
from tasksync.domain.email_requests import EmailPriority


class Hasher(ABC):
    @abstractmethod
    async def hash(self, plain: str) -> str: ...

    @abstractmethod
    async def compare(self, plain: str, hashed: str) -> bool: ...


class Encryptor(ABC):
    """Signs and reads session tokens."""

    @abstractmethod
    def encrypt(self, payload: dict[str, Any], expires_in: Optional[timedelta] = None) -> str: ...

    @abstractmethod
    def decrypt(self, token: str, verify_exp: bool = True) -> dict[str, Any]: ...


@dataclass
class UploadedFile:
    url: str


@dataclass
class SignedUrl:
    url: str
    expires_at: datetime


class FileStorage(ABC):
    @abstractmethod
    async def upload(self, filename: str, content_type: str, body: bytes) -> UploadedFile: ...

    @abstractmethod
    async def delete(self, path: str) -> None: ...

    @abstractmethod
    async def get_signed_url(self, path: str, expires_in: int = 3600) -> SignedUrl: ...


@dataclass(frozen=True)
class QueuedEmail:
    """One queue entry: which request, at what priority, on which attempt."""

    email_request_id: str
    priority: EmailPriority
    attempt: int = 0


class EmailQueue(ABC):
    """Priority queue of email request ids (highest priority first, FIFO within).

    Entries enqueued with a delay are held back until it elapses and then
    join the queue at their original priority. size() counts both.
    """

    @abstractmethod
    async def enqueue(
        self,
        email_request_id: str,
        priority: EmailPriority,
        attempt: int = 0,
        delay: float = 0.0,
    ) -> None: ...

    @abstractmethod
    async def dequeue(self) -> Optional[QueuedEmail]: ...

    @abstractmethod
    async def size(self) -> int: ...


@dataclass
class OutgoingEmail:
    to: str
    subject: str
    html: str
    text: Optional[str] = None


class EmailSender(ABC):
    @abstractmethod
    async def send(self, email: OutgoingEmail) -> None: ...


class KeyValueStore(ABC):
    """The slice of Redis the email worker needs: dead-letter list + status channel."""

    @abstractmethod
    async def lpush(self, key: str, value: str) -> None: ...

    @abstractmethod
    async def lrange(self, key: str, start: int = 0, end: int = -1) -> list[str]: ...

    @abstractmethod
    async def publish(self, channel: str, message: dict[str, Any]) -> None: ...


@dataclass
class AuthUser:
    id: UniqueEntityID
    name: str
    email: str


class AuthUserService(ABC):
    """Read model used by email subscribers to address a recipient."""

    @abstractmethod
    async def get_user_for_email_delivery(self, user_id: UniqueEntityID) -> Optional[AuthUser]: ...
