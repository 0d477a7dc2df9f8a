"""Sessions API: login, logout, revoke-all, token renewal.

Learn: Routes for the session lifecycle:
- POST /sessions → email/password → access token (cookie + body)
- DELETE /sessions → drop the stored refresh token, clear the cookie
- POST /sessions/revoke-all → drop refresh token and pending verification links
- GET /auth/refresh → (possibly expired) access token → new access token
"""

from fastapi import APIRouter, Depends, HTTPException, Response

from tasksync.api.deps import get_session_service
from tasksync.auth.dependencies import (
    CurrentIdentity,
    get_current_user,
    get_refresh_identity,
)
from tasksync.config import settings
from tasksync.core.entities import UniqueEntityID
from tasksync.core.errors import (
    ForbiddenActionError,
    InvalidCredentialsError,
    RefreshTokenExpiredError,
    ResourceNotFoundError,
)
from tasksync.observability.metrics import record_business_event
from tasksync.schemas.account import MessageResponse, SessionCreate, TokenResponse
from tasksync.services.session_service import SessionService

router = APIRouter()


def _set_access_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.access_cookie_name,
        value=token,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
        path="/",
    )


def _clear_access_cookie(response: Response) -> None:
    response.delete_cookie(key=settings.access_cookie_name, path="/")


# ─── Login ───────────────────────────────────────────────


@router.post("/sessions", response_model=TokenResponse)
async def create_session(
    body: SessionCreate,
    response: Response,
    svc: SessionService = Depends(get_session_service),
):
    """Login with email and password."""
    try:
        access_token = await svc.authenticate(email=body.email, password=body.password)
    except InvalidCredentialsError as e:
        record_business_event("login", "session", status="failure")
        raise HTTPException(status_code=401, detail=str(e))

    _set_access_cookie(response, access_token)
    record_business_event("login", "session")
    return TokenResponse(access_token=access_token)


# ─── Logout ──────────────────────────────────────────────


@router.delete("/sessions", response_model=MessageResponse)
async def delete_session(
    response: Response,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: SessionService = Depends(get_session_service),
):
    await svc.terminate(UniqueEntityID(identity.user_id))
    _clear_access_cookie(response)
    record_business_event("logout", "session", user_id=identity.user_id)
    return MessageResponse(message="Session terminated")


@router.post("/sessions/revoke-all", response_model=MessageResponse)
async def revoke_all_sessions(
    response: Response,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: SessionService = Depends(get_session_service),
):
    await svc.revoke_all(UniqueEntityID(identity.user_id))
    _clear_access_cookie(response)
    record_business_event("revoke_all", "session", user_id=identity.user_id)
    return MessageResponse(message="All sessions revoked")


# ─── Refresh ────────────────────────────────────────────


@router.get("/auth/refresh", response_model=TokenResponse)
async def refresh_session(
    response: Response,
    identity: CurrentIdentity = Depends(get_refresh_identity),
    svc: SessionService = Depends(get_session_service),
):
    """Exchange the stored refresh token for a new access token."""
    try:
        access_token = await svc.renew(UniqueEntityID(identity.user_id))
    except ResourceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RefreshTokenExpiredError as e:
        record_business_event("refresh", "session", status="expired", user_id=identity.user_id)
        raise HTTPException(
            status_code=401,
            detail={"code": "refresh.expired", "message": str(e)},
        )
    except ForbiddenActionError as e:
        raise HTTPException(status_code=403, detail=str(e))

    _set_access_cookie(response, access_token)
    record_business_event("refresh", "session", user_id=identity.user_id)
    return TokenResponse(access_token=access_token)
