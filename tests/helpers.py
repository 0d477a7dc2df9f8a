"""Request helpers shared by the API tests."""

from datetime import timedelta
from typing import Optional

from tasksync.auth.jwt import JwtEncryptor

STRONG_PASSWORD = "Str0ng!pass"


def access_token(user_id: str, expires_in: Optional[timedelta] = None, type: str = "access") -> str:
    """Sign a token the way the account service does."""
    return JwtEncryptor().encrypt({"sub": user_id, "type": type}, expires_in=expires_in)


async def sign_up(client, email="ada@example.com", name="Ada Lovelace", password=STRONG_PASSWORD):
    r = await client.post(
        "/api/v1/sign-up",
        json={"name": name, "email": email, "password": password},
    )
    assert r.status_code == 201, r.text
    return r.json()


async def login(client, email="ada@example.com", password=STRONG_PASSWORD) -> dict:
    """Log in and return an Authorization header dict.

    The session cookie is dropped so requests authenticate via the header
    only, unless a test sets the cookie itself.
    """
    r = await client.post("/api/v1/sessions", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    client.cookies.clear()
    return {"Authorization": f"Bearer {r.json()['access_token']}"}
