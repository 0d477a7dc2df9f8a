"""Logging setup and the use case / repository instrumentation."""

import json
import logging

import pytest
import structlog
from prometheus_client import REGISTRY

from tasksync.core.errors import ResourceNotFoundError
from tasksync.core.observability import track_query, with_observability
from tasksync.observability.logging import configure_logging
from tasksync.repositories.sql import SqlUsersRepository


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


def _sample(name: str, labels: dict) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


def _renderer():
    return structlog.get_config()["processors"][-1]


# ═══════════════════════════════════════════════════════════
# configure_logging
# ═══════════════════════════════════════════════════════════


def test_development_logs_to_the_console():
    configure_logging("INFO", environment="development")
    assert isinstance(_renderer(), structlog.dev.ConsoleRenderer)


@pytest.mark.parametrize("environment", ["production", "staging", "test"])
def test_other_environments_log_json(environment):
    configure_logging("INFO", environment=environment)
    assert isinstance(_renderer(), structlog.processors.JSONRenderer)


def test_explicit_flag_overrides_environment():
    configure_logging("INFO", json_output=True, environment="development")
    assert isinstance(_renderer(), structlog.processors.JSONRenderer)

    configure_logging("INFO", json_output=False, environment="production")
    assert isinstance(_renderer(), structlog.dev.ConsoleRenderer)


def test_json_line_carries_bound_request_id(caplog):
    configure_logging("INFO", environment="production")
    structlog.contextvars.bind_contextvars(request_id="req-123")

    with caplog.at_level(logging.INFO):
        structlog.get_logger("tasksync.tests").info("task.created", task_id="t-1")

    line = json.loads(caplog.records[-1].getMessage())
    assert line["event"] == "task.created"
    assert line["request_id"] == "req-123"
    assert line["task_id"] == "t-1"
    assert line["level"] == "info"
    assert line["logger"] == "tasksync.tests"
    assert "timestamp" in line


# ═══════════════════════════════════════════════════════════
# @with_observability
# ═══════════════════════════════════════════════════════════


@with_observability("lookup_member", identifier="email")
async def lookup_member(email: str, fail: Exception = None) -> str:
    if fail is not None:
        raise fail
    return email.upper()


async def test_use_case_success_counted_and_timed():
    labels = {"use_case": "lookup_member", "result": "success"}
    before = _sample("use_case_executions_total", labels)
    timed = _sample("use_case_duration_seconds_count", {"use_case": "lookup_member"})

    assert await lookup_member("ada@example.com") == "ADA@EXAMPLE.COM"

    assert _sample("use_case_executions_total", labels) == before + 1
    assert _sample("use_case_duration_seconds_count", {"use_case": "lookup_member"}) == timed + 1


async def test_use_case_error_counted_and_reraised():
    labels = {"use_case": "lookup_member", "result": "error"}
    before = _sample("use_case_executions_total", labels)

    with pytest.raises(ResourceNotFoundError):
        await lookup_member("ada@example.com", fail=ResourceNotFoundError("no member"))

    assert _sample("use_case_executions_total", labels) == before + 1


async def test_unexpected_exception_counted_separately():
    labels = {"use_case": "lookup_member", "result": "exception"}
    before = _sample("use_case_executions_total", labels)

    with pytest.raises(RuntimeError):
        await lookup_member("ada@example.com", fail=RuntimeError("boom"))

    assert _sample("use_case_executions_total", labels) == before + 1


# ═══════════════════════════════════════════════════════════
# @track_query
# ═══════════════════════════════════════════════════════════


@track_query("find_by_name", "members")
async def find_by_name(name: str, fail: bool = False) -> dict:
    if fail:
        raise ConnectionError("database unavailable")
    return {"name": name}


async def test_query_success_recorded():
    labels = {"operation": "find_by_name", "table": "members", "status": "success"}
    timing = {"operation": "find_by_name", "table": "members"}
    before = _sample("database_operations_total", labels)
    timed = _sample("db_query_duration_seconds_count", timing)

    assert await find_by_name("ada") == {"name": "ada"}

    assert _sample("database_operations_total", labels) == before + 1
    assert _sample("db_query_duration_seconds_count", timing) == timed + 1


async def test_query_error_recorded_and_reraised():
    labels = {"operation": "find_by_name", "table": "members", "status": "error"}
    before = _sample("database_operations_total", labels)

    with pytest.raises(ConnectionError):
        await find_by_name("ada", fail=True)

    assert _sample("database_operations_total", labels) == before + 1


class FailingSession:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, statement):
        raise ConnectionError("database unavailable")


async def test_sql_repository_failures_recorded_per_table():
    labels = {"operation": "find_by_email", "table": "users", "status": "error"}
    before = _sample("database_operations_total", labels)
    repo = SqlUsersRepository(FailingSession)

    with pytest.raises(ConnectionError):
        await repo.find_by_email("ada@example.com")

    assert _sample("database_operations_total", labels) == before + 1
