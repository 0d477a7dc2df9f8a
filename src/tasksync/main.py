"""FastAPI application factory.

Learn: App factory pattern: create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (logging, Redis, the domain
event subscribers and the email worker). Middleware, CORS, and routers
are all registered here.
"""

import asyncio
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tasksync import __version__
from tasksync.api import api_router
from tasksync.api.deps import get_container
from tasksync.api.metrics import router as metrics_router
from tasksync.config import settings
from tasksync.core.events import DomainEvents
from tasksync.observability.logging import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown. The container comes from the same dependency the routes use,
    so a test override of get_container also reaches the lifespan.
    """
    configure_logging(
        settings.log_level,
        json_output=settings.log_json,
        environment=settings.environment,
    )
    container = app.dependency_overrides.get(get_container, get_container)()
    logger.info(
        "tasksync.starting",
        version=__version__,
        environment=settings.environment,
        backend=container.config.persistence_backend,
        port=settings.port,
    )

    if container.redis is not None:
        from tasksync.kv.client import init_redis
        try:
            await init_redis(container.redis)
            logger.info("tasksync.redis_connected", url=container.config.redis_url)
        except Exception as e:
            logger.warning("tasksync.redis_unavailable", error=str(e))
            # Rate limiting is skipped and /health reports degraded

    container.register_subscribers()

    worker = None
    worker_task = None
    if container.config.email_worker_enabled:
        worker = container.email_worker()
        worker_task = asyncio.create_task(worker.run_loop())
        logger.info("tasksync.email_worker_started")

    yield

    # Shutdown
    logger.info("tasksync.shutdown")

    if worker is not None:
        worker.stop()
        worker_task.cancel()
        try:
            await worker_task
        except asyncio.CancelledError:
            pass

    DomainEvents.clear_handlers()

    from tasksync.kv.client import release_redis
    release_redis()
    await container.close()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="TaskSync API",
        description="Accounts, sessions, profiles, transactional email and tasks",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → HttpMetrics → Security → RequestId → handler

    from tasksync.middleware.http_metrics import HttpMetricsMiddleware
    from tasksync.middleware.rate_limit import RateLimitMiddleware
    from tasksync.middleware.request_id import RequestIdMiddleware
    from tasksync.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(HttpMetricsMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Mount API routes
    app.include_router(api_router)

    # Prometheus scrape endpoint lives outside the versioned API
    app.include_router(metrics_router, tags=["metrics"])

    return app


# Default app instance (used by uvicorn: tasksync.main:app)
app = create_app()
