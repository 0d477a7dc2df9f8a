"""Service dependencies for route handlers.

Learn: every route gets its service through Depends(get_xxx_service).
All of them hang off get_container, so a test swaps the whole backend
with one line:

    app.dependency_overrides[get_container] = lambda: in_memory_container
"""

from functools import lru_cache

from fastapi import Depends

from tasksync.config import settings
from tasksync.container import Container, build_container
from tasksync.services.account_service import AccountService
from tasksync.services.profile_service import ProfileService
from tasksync.services.session_service import SessionService
from tasksync.services.task_service import TaskService


@lru_cache
def get_container() -> Container:
    """Process-wide container, built on first use."""
    return build_container(settings)


def get_session_service(container: Container = Depends(get_container)) -> SessionService:
    return container.session_service


def get_account_service(container: Container = Depends(get_container)) -> AccountService:
    return container.account_service


def get_profile_service(container: Container = Depends(get_container)) -> ProfileService:
    return container.profile_service


def get_task_service(container: Container = Depends(get_container)) -> TaskService:
    return container.task_service
