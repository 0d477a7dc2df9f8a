"""Use case instrumentation.

Learn: every service method that represents a use case is wrapped with
@with_observability. One decorator gives us a structured performance log
line and prometheus counters/histograms without sprinkling timing code
through the services.

Outcomes:
    success   - returned normally
    error     - raised a UseCaseError (expected: not found, conflict...)
    exception - raised anything else (a bug or an infrastructure failure)
"""

import functools
import inspect
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog

from tasksync.core.errors import UseCaseError
from tasksync.observability.metrics import (
    DATABASE_OPERATIONS,
    DB_QUERY_DURATION,
    USE_CASE_DURATION,
    USE_CASE_EXECUTIONS,
)

logger = structlog.get_logger()

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def with_observability(operation: str, identifier: Optional[str] = None) -> Callable[[F], F]:
    """Wrap an async use case with timing, logging and metrics.

    Args:
        operation: Metric label and log field, e.g. "authenticate_session".
        identifier: Name of the argument to log as `subject` (a user id,
            an email). Looked up by binding the call against the signature.
    """

    def decorator(func: F) -> F:
        signature = inspect.signature(func)

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            subject = None
            if identifier:
                bound = signature.bind_partial(*args, **kwargs)
                value = bound.arguments.get(identifier)
                subject = str(value) if value is not None else None

            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except UseCaseError as e:
                _record(operation, "error", start)
                logger.warning(
                    "use_case.failed",
                    operation=operation,
                    duration_ms=_elapsed_ms(start),
                    success=False,
                    subject=subject,
                    error=type(e).__name__,
                )
                raise
            except Exception:
                _record(operation, "exception", start)
                logger.exception(
                    "use_case.crashed",
                    operation=operation,
                    duration_ms=_elapsed_ms(start),
                    success=False,
                    subject=subject,
                )
                raise

            _record(operation, "success", start)
            logger.info(
                "use_case.completed",
                operation=operation,
                duration_ms=_elapsed_ms(start),
                success=True,
                subject=subject,
            )
            return result

        return wrapper  # type: ignore[return-value]

    return decorator


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


def _record(operation: str, result: str, start: float) -> None:
    USE_CASE_EXECUTIONS.labels(use_case=operation, result=result).inc()
    USE_CASE_DURATION.labels(use_case=operation).observe(time.perf_counter() - start)


def track_query(operation: str, table: str) -> Callable[[F], F]:
    """Wrap an async repository method with database metrics.

    Records database_operations_total{operation,table,status} and
    db_query_duration_seconds, and logs each call at debug level. Errors
    are logged and re-raised untouched.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _record_query(operation, table, "error", start)
                logger.warning(
                    "db.query_failed",
                    operation=operation,
                    table=table,
                    duration_ms=_elapsed_ms(start),
                    error=str(e),
                )
                raise

            _record_query(operation, table, "success", start)
            logger.debug(
                "db.query",
                operation=operation,
                table=table,
                duration_ms=_elapsed_ms(start),
            )
            return result

        return wrapper  # type: ignore[return-value]

    return decorator


def _record_query(operation: str, table: str, status: str, start: float) -> None:
    DATABASE_OPERATIONS.labels(operation=operation, table=table, status=status).inc()
    DB_QUERY_DURATION.labels(operation=operation, table=table).observe(
        time.perf_counter() - start
    )
