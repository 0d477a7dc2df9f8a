"""Repository ports.

Implementations: repositories/sql_*.py, repositories/redis_*.py and the
in-memory doubles in repositories/memory.py.

UsersRepository.create/save and VerificationTokensRepository.save must
dispatch the aggregate's pending domain events after the write.
"""

from abc import ABC, abstractmethod
from typing import Optional

from tasksync.core.entities import UniqueEntityID
from tasksync.domain.email_requests import EmailPriority, EmailRequest, EmailStatus
from tasksync.domain.tasks import Task
from tasksync.domain.tokens import AuthToken, TokenType, VerificationToken
from tasksync.domain.users import User


class UsersRepository(ABC):
    @abstractmethod
    async def find_by_id(self, id: UniqueEntityID) -> Optional[User]: ...

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[User]: ...

    @abstractmethod
    async def create(self, user: User) -> None: ...

    @abstractmethod
    async def save(self, user: User) -> None: ...


class AuthTokensRepository(ABC):
    @abstractmethod
    async def find_by_user_id(self, user_id: UniqueEntityID) -> Optional[AuthToken]: ...

    @abstractmethod
    async def find_by_refresh_token(self, refresh_token: str) -> Optional[AuthToken]: ...

    @abstractmethod
    async def create(self, auth_token: AuthToken) -> None: ...

    @abstractmethod
    async def delete(self, auth_token: AuthToken) -> None: ...

    @abstractmethod
    async def revoke_tokens_by_user_id(self, user_id: UniqueEntityID) -> None: ...


class VerificationTokensRepository(ABC):
    @abstractmethod
    async def get(self, token: str, type: TokenType) -> Optional[VerificationToken]: ...

    @abstractmethod
    async def save(self, verification_token: VerificationToken) -> None: ...

    @abstractmethod
    async def delete(self, verification_token: VerificationToken) -> None: ...

    @abstractmethod
    async def revoke_tokens_by_user_id(self, user_id: UniqueEntityID) -> None: ...


class EmailRequestsRepository(ABC):
    @abstractmethod
    async def find_by_id(self, id: UniqueEntityID) -> Optional[EmailRequest]: ...

    @abstractmethod
    async def find_pending(self, limit: int = 50, offset: int = 0) -> list[EmailRequest]: ...

    @abstractmethod
    async def find_by_status_and_priority(
        self,
        status: EmailStatus,
        priority: EmailPriority,
        limit: int = 50,
        offset: int = 0,
    ) -> list[EmailRequest]: ...

    @abstractmethod
    async def create(self, email_request: EmailRequest) -> None: ...

    @abstractmethod
    async def save(self, email_request: EmailRequest) -> None: ...


class TasksRepository(ABC):
    @abstractmethod
    async def create(self, task: Task) -> None: ...

    @abstractmethod
    async def find_by_id(self, id: UniqueEntityID) -> Optional[Task]: ...

    @abstractmethod
    async def find_many_by_project(
        self, project_id: UniqueEntityID, limit: int = 50, offset: int = 0
    ) -> list[Task]: ...

    @abstractmethod
    async def save(self, task: Task) -> None: ...

    @abstractmethod
    async def delete(self, task: Task) -> None: ...
