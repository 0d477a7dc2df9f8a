"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
- Access token: short-lived (10min), sent as an httpOnly cookie or Bearer header
- Refresh token: long-lived (7 days), never leaves the server; it is stored
  per user in the auth token store and checked by GET /auth/refresh

Renewal reads the access token with expiry verification disabled: the
signature still proves who the caller is, the stored refresh token
decides whether they may continue.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from tasksync.config import settings
from tasksync.ports.services import Encryptor


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def verify_token(
    token: str,
    verify_exp: bool = True,
    expected_type: Optional[str] = None,
) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"verify_exp": verify_exp},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")

    if expected_type and payload.get("type") != expected_type:
        raise TokenError(f"Invalid token: expected {expected_type} token")
    return payload


def _encode(claims: dict[str, Any], expires_in: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {**claims, "exp": now + expires_in, "iat": now}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


class JwtEncryptor(Encryptor):
    """Encryptor port: the account service signs and reads every JWT through it."""

    def encrypt(self, payload: dict[str, Any], expires_in: Optional[timedelta] = None) -> str:
        if expires_in is None:
            expires_in = timedelta(minutes=settings.access_token_expire_minutes)
        return _encode(payload, expires_in)

    def decrypt(self, token: str, verify_exp: bool = True) -> dict[str, Any]:
        return verify_token(token, verify_exp=verify_exp)
