"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running
and dependencies (Postgres, Redis) are reachable. The memory backend
has neither, so both report "skipped".
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text

from tasksync import __version__
from tasksync.api.deps import get_container
from tasksync.container import Container

router = APIRouter()


@router.get("/health")
async def health_check(container: Container = Depends(get_container)):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    # Check Postgres
    if container.engine is None:
        checks["postgres"] = "skipped"
    else:
        try:
            async with container.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            checks["postgres"] = "ok"
        except Exception as e:
            checks["postgres"] = f"error: {e}"

    # Check Redis
    if container.redis is None:
        checks["redis"] = "skipped"
    else:
        try:
            await container.redis.ping()
            checks["redis"] = "ok"
        except Exception as e:
            checks["redis"] = f"error: {e}"

    status = "healthy" if all(
        v in ("ok", "skipped") for k, v in checks.items() if k != "version"
    ) else "degraded"

    return {"status": status, **checks}
