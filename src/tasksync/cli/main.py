"""TaskSync CLI: background worker and operator commands.

Usage:
    tasksync worker                  # Run the email queue worker until Ctrl-C
    tasksync seed-users --count 5    # Create verified demo users
    tasksync dlq --limit 20          # Email requests that exhausted retries
"""

from __future__ import annotations

import asyncio
import concurrent.futures
from typing import Optional

import click
import structlog

from tasksync import __version__
from tasksync.config import settings
from tasksync.container import Container, build_container
from tasksync.observability.logging import configure_logging

logger = structlog.get_logger()

SEED_PASSWORD = "Password123!"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No running loop: normal CLI invocation
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _container() -> Container:
    configure_logging(
        settings.log_level,
        json_output=settings.log_json,
        environment=settings.environment,
    )
    return build_container(settings)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="tasksync")
def cli():
    """TaskSync: operate the email worker and seed data."""


# ---------------------------------------------------------------------------
# tasksync worker
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--once", is_flag=True, help="Drain the queue once and exit")
def worker(once: bool):
    """Run the email queue worker."""
    _run(_worker_impl(_container(), once))


async def _worker_impl(container: Container, once: bool) -> None:
    email_worker = container.email_worker()
    try:
        if once:
            processed = await email_worker.drain()
            click.echo(f"Processed {processed} email request(s)")
        else:
            await email_worker.run_loop()
    except (KeyboardInterrupt, asyncio.CancelledError):
        email_worker.stop()
    finally:
        await container.close()


# ---------------------------------------------------------------------------
# tasksync seed-users
# ---------------------------------------------------------------------------


@cli.command("seed-users")
@click.option("--count", "-n", default=5, show_default=True, help="Users to create")
@click.option("--domain", default="example.com", show_default=True)
def seed_users(count: int, domain: str):
    """Create verified demo users (password: Password123!)."""
    created = _run(_seed_users_impl(_container(), count, domain))
    for email in created:
        click.secho(f"  + {email}", fg="green")
    click.echo(f"Created {len(created)} user(s)")


async def _seed_users_impl(container: Container, count: int, domain: str) -> list[str]:
    from tasksync.domain.users import User

    created: list[str] = []
    try:
        password_hash = await container.hasher.hash(SEED_PASSWORD)
        for i in range(1, count + 1):
            email = f"user{i}@{domain}"
            if await container.users.find_by_email(email):
                continue
            user = User.create(
                name=f"Demo User {i}",
                email=email,
                password_hash=password_hash,
                email_verified=True,
            )
            await container.users.create(user)
            created.append(email)
        logger.info("cli.seed_users", created=len(created))
        return created
    finally:
        await container.close()


# ---------------------------------------------------------------------------
# tasksync dlq
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--limit", "-l", type=int, default=None, help="Max ids to show")
def dlq(limit: Optional[int]):
    """List email requests that exhausted their retries."""
    ids = _run(_dlq_impl(_container(), limit))
    if not ids:
        click.echo("Dead-letter queue is empty.")
        return
    for email_request_id in ids:
        click.secho(email_request_id, fg="red")


async def _dlq_impl(container: Container, limit: Optional[int]) -> list[str]:
    from tasksync.services.email_worker import dead_lettered_ids

    try:
        return await dead_lettered_ids(container.kv, limit)
    finally:
        await container.close()


if __name__ == "__main__":
    cli()
