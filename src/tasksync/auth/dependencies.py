"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the current user from the request.

The access token is read from the Authorization: Bearer header first,
then from the httpOnly cookie set by POST /sessions. Browsers use the
cookie, scripts and tests use the header.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Header, Request

from tasksync.auth.jwt import TokenError, verify_token
from tasksync.config import settings


class CurrentIdentity:
    """The authenticated user making the request."""

    def __init__(self, user_id: str):
        self.user_id = user_id


def _extract_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:]
    return request.cookies.get(settings.access_cookie_name)


async def get_current_user_optional(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> Optional[CurrentIdentity]:
    """Extract current identity (optional: returns None if no auth)."""
    token = _extract_token(request, authorization)
    if not token:
        return None
    return _authenticate_jwt(token, verify_exp=True)


async def get_current_user(
    identity: Optional[CurrentIdentity] = Depends(get_current_user_optional),
) -> CurrentIdentity:
    """Extract current identity (required: 401 if no auth)."""
    if not identity:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


async def get_refresh_identity(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> CurrentIdentity:
    """Identity for token renewal: signature checked, expiry ignored."""
    token = _extract_token(request, authorization)
    if not token:
        raise HTTPException(
            status_code=401,
            detail={"code": "token.missing", "message": "Authentication required"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _authenticate_jwt(token, verify_exp=False)


def _authenticate_jwt(token: str, verify_exp: bool) -> CurrentIdentity:
    """Authenticate via JWT access token."""
    try:
        payload = verify_token(token, verify_exp=verify_exp, expected_type="access")
        return CurrentIdentity(user_id=payload["sub"])
    except (TokenError, KeyError) as e:
        raise HTTPException(
            status_code=401,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
