"""JWT helpers, bcrypt hashing and the password policy."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from tasksync.auth.jwt import (
    JwtEncryptor,
    TokenError,
    verify_token,
)
from tasksync.auth.password import BcryptHasher, hash_password, verify_password
from tasksync.config import Settings
from tasksync.schemas.account import SignUpRequest, validate_password

from tests.helpers import access_token


# ═══════════════════════════════════════════════════════════
# JWT
# ═══════════════════════════════════════════════════════════


def test_access_token_claims():
    payload = verify_token(access_token("user-1"), expected_type="access")
    assert payload["sub"] == "user-1"
    assert payload["exp"] - payload["iat"] == 600


def test_refresh_token_rejected_where_access_expected():
    with pytest.raises(TokenError):
        verify_token(access_token("user-1", type="refresh"), expected_type="access")


def test_expired_token_only_accepted_without_exp_check():
    expired = access_token("user-1", expires_in=timedelta(minutes=-1))
    with pytest.raises(TokenError, match="expired"):
        verify_token(expired)
    assert verify_token(expired, verify_exp=False)["sub"] == "user-1"


def test_tampered_token_rejected():
    token = access_token("user-1")
    with pytest.raises(TokenError):
        verify_token(token[:-2] + ("aa" if not token.endswith("aa") else "bb"))


def test_encryptor_round_trip_with_custom_expiry():
    encryptor = JwtEncryptor()
    token = encryptor.encrypt({"sub": "u", "type": "refresh"}, expires_in=timedelta(days=7))
    payload = encryptor.decrypt(token)
    assert payload["type"] == "refresh"
    assert payload["exp"] - payload["iat"] == 7 * 24 * 3600


# ═══════════════════════════════════════════════════════════
# bcrypt
# ═══════════════════════════════════════════════════════════


def test_hash_and_verify_password():
    hashed = hash_password("correct horse")
    assert hashed.startswith("$2b$12$")
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("anything", "not-a-bcrypt-hash")


def test_passwords_truncated_at_72_bytes():
    base = "a" * 72
    assert verify_password(base + "tail", hash_password(base + "other"))


async def test_bcrypt_hasher_is_async():
    hasher = BcryptHasher()
    hashed = await hasher.hash("secret")
    assert await hasher.compare("secret", hashed)


# ═══════════════════════════════════════════════════════════
# Password policy + settings
# ═══════════════════════════════════════════════════════════


def test_validate_password_lists_missing_rules():
    with pytest.raises(ValueError, match="an uppercase letter, a digit"):
        validate_password("lowercase!")
    assert validate_password("G00d!pass") == "G00d!pass"


def test_sign_up_schema_applies_policy():
    with pytest.raises(ValidationError):
        SignUpRequest(name="Ada", email="ada@example.com", password="password")


def test_default_secret_refused_in_production():
    with pytest.raises(ValidationError):
        Settings(environment="production")
    Settings(environment="production", jwt_secret="a-real-secret")
