"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter for routers that are fully protected (profile,
tasks). Sessions mixes open (login) and protected (logout) routes, so it
declares auth per route.
"""

from fastapi import APIRouter, Depends

from tasksync.api.accounts import router as accounts_router
from tasksync.api.health import router as health_router
from tasksync.api.profile import router as profile_router
from tasksync.api.sessions import router as sessions_router
from tasksync.api.tasks import router as tasks_router
from tasksync.auth.dependencies import get_current_user

# All protected routers require authentication
_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api/v1")

# Open routes: no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(accounts_router, tags=["accounts"])
api_router.include_router(sessions_router, tags=["sessions"])

# Protected routes: require a valid access token
api_router.include_router(profile_router, tags=["profile"], dependencies=_auth)
api_router.include_router(tasks_router, tags=["tasks"], dependencies=_auth)
