"""Wiring: which adapter backs which port.

Learn: services never construct their own dependencies. The container
builds every adapter once from Settings and hands out services that share
them. The API reaches it through api.deps.get_container (tests override
that one dependency with an in-memory container); the CLI builds its own.

    persistence_backend=sql     Postgres (users, email requests, tasks)
                                + Redis (tokens, queue, dead letters)
    persistence_backend=memory  everything in-process
"""

from dataclasses import dataclass, field
from datetime import timedelta
from functools import cached_property
from typing import Any, Optional

import structlog

from tasksync.auth.jwt import JwtEncryptor
from tasksync.auth.password import BcryptHasher
from tasksync.config import Settings, settings
from tasksync.mail.senders import LoggingEmailSender, SmtpEmailSender
from tasksync.mail.templates import EmailTemplateRenderer
from tasksync.ports.repositories import (
    AuthTokensRepository,
    EmailRequestsRepository,
    TasksRepository,
    UsersRepository,
    VerificationTokensRepository,
)
from tasksync.ports.services import (
    EmailQueue,
    EmailSender,
    Encryptor,
    FileStorage,
    Hasher,
    KeyValueStore,
)
from tasksync.repositories.memory import (
    InMemoryAuthTokensRepository,
    InMemoryEmailQueue,
    InMemoryEmailRequestsRepository,
    InMemoryFileStorage,
    InMemoryKeyValueStore,
    InMemoryTasksRepository,
    InMemoryUsersRepository,
    InMemoryVerificationTokensRepository,
)
from tasksync.services.account_service import AccountService
from tasksync.services.email_request_service import EmailRequestService
from tasksync.services.email_worker import EmailQueueWorker
from tasksync.services.profile_service import ProfileService
from tasksync.services.session_service import SessionService
from tasksync.services.subscribers import (
    EmailNotificationSubscriber,
    RepositoryAuthUserService,
)
from tasksync.services.task_service import TaskService
from tasksync.storage.supabase import SupabaseStorage

logger = structlog.get_logger()


@dataclass
class Container:
    # Repositories
    users: UsersRepository
    auth_tokens: AuthTokensRepository
    verification_tokens: VerificationTokensRepository
    email_requests: EmailRequestsRepository
    tasks: TasksRepository

    # Infrastructure ports
    hasher: Hasher
    encryptor: Encryptor
    storage: FileStorage
    email_queue: EmailQueue
    email_sender: EmailSender
    kv: KeyValueStore

    config: Settings = field(default_factory=lambda: settings)

    # Connections owned by the container (None for the memory backend)
    redis: Optional[Any] = None
    engine: Optional[Any] = None

    # ─── Services ────────────────────────────────────────

    @property
    def _verification_token_ttl(self) -> timedelta:
        return timedelta(hours=self.config.verification_token_expire_hours)

    @cached_property
    def session_service(self) -> SessionService:
        return SessionService(
            self.users,
            self.auth_tokens,
            self.verification_tokens,
            self.hasher,
            self.encryptor,
            refresh_token_ttl=timedelta(days=self.config.refresh_token_expire_days),
        )

    @cached_property
    def account_service(self) -> AccountService:
        return AccountService(
            self.users,
            self.verification_tokens,
            self.hasher,
            verification_token_ttl=self._verification_token_ttl,
        )

    @cached_property
    def profile_service(self) -> ProfileService:
        return ProfileService(
            self.users,
            self.verification_tokens,
            self.hasher,
            self.storage,
            avatar_url_ttl_seconds=self.config.avatar_url_expire_hours * 3600,
            verification_token_ttl=self._verification_token_ttl,
        )

    @cached_property
    def email_request_service(self) -> EmailRequestService:
        return EmailRequestService(self.email_requests, self.email_queue)

    @cached_property
    def task_service(self) -> TaskService:
        return TaskService(self.tasks)

    @cached_property
    def renderer(self) -> EmailTemplateRenderer:
        return EmailTemplateRenderer(logo_url=self.config.logo_url)

    # ─── Background pieces ───────────────────────────────

    def register_subscribers(self) -> EmailNotificationSubscriber:
        subscriber = EmailNotificationSubscriber(
            RepositoryAuthUserService(self.users),
            self.email_request_service,
            app_url=self.config.app_url,
        )
        subscriber.setup()
        return subscriber

    def email_worker(self) -> EmailQueueWorker:
        return EmailQueueWorker(
            self.email_requests,
            self.email_queue,
            self.email_sender,
            self.renderer,
            self.kv,
            poll_interval=self.config.email_poll_interval,
            retry_backoff=self.config.email_retry_backoff_seconds,
            max_retries=self.config.email_max_retries,
        )

    async def close(self) -> None:
        if self.redis is not None:
            await self.redis.aclose()
        if self.engine is not None:
            await self.engine.dispose()


def build_container(config: Settings = settings) -> Container:
    """Build adapters for the configured backend. Opens no connections."""
    if config.smtp_host:
        sender: EmailSender = SmtpEmailSender(
            host=config.smtp_host,
            port=config.smtp_port,
            sender=config.mail_from,
            username=config.smtp_username,
            password=config.smtp_password,
            use_tls=config.smtp_use_tls,
        )
    else:
        logger.warning("container.smtp_not_configured", fallback="logging")
        sender = LoggingEmailSender()

    if config.supabase_url:
        storage: FileStorage = SupabaseStorage(
            config.supabase_url, config.supabase_key, config.supabase_bucket
        )
    else:
        logger.warning("container.storage_not_configured", fallback="memory")
        storage = InMemoryFileStorage()

    if config.persistence_backend == "memory":
        return Container(
            users=InMemoryUsersRepository(),
            auth_tokens=InMemoryAuthTokensRepository(),
            verification_tokens=InMemoryVerificationTokensRepository(),
            email_requests=InMemoryEmailRequestsRepository(),
            tasks=InMemoryTasksRepository(),
            hasher=BcryptHasher(),
            encryptor=JwtEncryptor(),
            storage=storage,
            email_queue=InMemoryEmailQueue(),
            email_sender=sender,
            kv=InMemoryKeyValueStore(),
            config=config,
        )

    # Imported lazily: creating the engine loads the asyncpg driver.
    from tasksync.db.engine import async_session_factory, engine
    from tasksync.kv.client import create_redis
    from tasksync.kv.store import RedisEmailQueue, RedisKeyValueStore
    from tasksync.repositories.redis_tokens import (
        RedisAuthTokensRepository,
        RedisVerificationTokensRepository,
    )
    from tasksync.repositories.sql import (
        SqlEmailRequestsRepository,
        SqlTasksRepository,
        SqlUsersRepository,
    )

    redis = create_redis(config.redis_url)
    return Container(
        users=SqlUsersRepository(async_session_factory),
        auth_tokens=RedisAuthTokensRepository(redis),
        verification_tokens=RedisVerificationTokensRepository(redis),
        email_requests=SqlEmailRequestsRepository(async_session_factory),
        tasks=SqlTasksRepository(async_session_factory),
        hasher=BcryptHasher(),
        encryptor=JwtEncryptor(),
        storage=storage,
        email_queue=RedisEmailQueue(redis),
        email_sender=sender,
        kv=RedisKeyValueStore(redis),
        config=config,
        redis=redis,
        engine=engine,
    )
