"""AccountService: sign-up, email confirmation, password recovery."""

from datetime import timedelta

import pytest

from tasksync.core.clock import utcnow
from tasksync.core.entities import UniqueEntityID
from tasksync.core.errors import (
    EmailAlreadyInUseError,
    EmailNotVerifiedError,
    ResourceGoneError,
    ResourceInvalidError,
    ResourceNotFoundError,
)
from tasksync.domain.tokens import TokenType, VerificationToken, hash_token


@pytest.fixture()
def svc(container):
    return container.account_service


def _tokens(container, token_type: TokenType) -> list[VerificationToken]:
    return [t for t in container.verification_tokens.items.values() if t.type is token_type]


# ═══════════════════════════════════════════════════════════
# enroll
# ═══════════════════════════════════════════════════════════


async def test_enroll_creates_unverified_user_and_token(container, svc):
    user = await svc.enroll("Ada", "ada@example.com", "secret")

    assert user.email_verified is False
    assert user.password_hash == "secret-hashed"
    assert await container.users.find_by_email("ada@example.com") is user

    tokens = _tokens(container, TokenType.EMAIL_VERIFY)
    assert len(tokens) == 1
    assert tokens[0].user_id == user.id


async def test_verification_link_lifetime_follows_settings(container):
    container.config = container.config.model_copy(update={"verification_token_expire_hours": 1})
    await container.account_service.enroll("Ada", "ada@example.com", "secret")

    [token] = _tokens(container, TokenType.EMAIL_VERIFY)
    remaining = token.expires_at - utcnow()
    assert timedelta(minutes=59) < remaining <= timedelta(hours=1)


async def test_enroll_duplicate_email(svc):
    await svc.enroll("Ada", "ada@example.com", "secret")
    with pytest.raises(EmailAlreadyInUseError):
        await svc.enroll("Other", "ada@example.com", "secret")


# ═══════════════════════════════════════════════════════════
# confirm_email
# ═══════════════════════════════════════════════════════════


async def test_confirm_email_verifies_and_consumes_token(container, svc):
    user = await svc.enroll("Ada", "ada@example.com", "secret")
    token = _tokens(container, TokenType.EMAIL_VERIFY)[0]

    confirmed = await svc.confirm_email(token.token)

    assert confirmed.id == user.id
    assert confirmed.email_verified is True
    assert _tokens(container, TokenType.EMAIL_VERIFY) == []


async def test_confirm_email_accepts_update_tokens(container, svc):
    user = await svc.enroll("Ada", "ada@example.com", "secret")
    update = VerificationToken.create(user_id=user.id, type=TokenType.EMAIL_UPDATE_VERIFY)
    await container.verification_tokens.save(update)

    await svc.confirm_email(update.token)
    assert user.email_verified is True


async def test_confirm_email_unknown_token(svc):
    with pytest.raises(ResourceNotFoundError):
        await svc.confirm_email("nope")


async def test_confirm_email_tampered_hash_is_invalid_and_deleted(container, svc):
    await svc.enroll("Ada", "ada@example.com", "secret")
    token = _tokens(container, TokenType.EMAIL_VERIFY)[0]
    token.props.token_hash = hash_token("different")

    with pytest.raises(ResourceInvalidError):
        await svc.confirm_email(token.token)
    assert _tokens(container, TokenType.EMAIL_VERIFY) == []


async def test_confirm_email_expired_token_is_gone(container, svc):
    await svc.enroll("Ada", "ada@example.com", "secret")
    token = _tokens(container, TokenType.EMAIL_VERIFY)[0]
    # Expires between the store lookup and the expiry check
    original_get = container.verification_tokens.get

    async def get_then_expire(raw, type):
        found = await original_get(raw, type)
        if found is not None:
            found.props.expires_at = utcnow() - timedelta(seconds=1)
        return found

    container.verification_tokens.get = get_then_expire

    with pytest.raises(ResourceGoneError):
        await svc.confirm_email(token.token)
    assert _tokens(container, TokenType.EMAIL_VERIFY) == []


async def test_confirm_email_for_deleted_user(container, svc):
    token = VerificationToken.create(user_id=UniqueEntityID(), type=TokenType.EMAIL_VERIFY)
    await container.verification_tokens.save(token)

    with pytest.raises(ResourceNotFoundError):
        await svc.confirm_email(token.token)
    assert container.verification_tokens.items == {}


# ═══════════════════════════════════════════════════════════
# password recovery
# ═══════════════════════════════════════════════════════════


async def _verified_user(container, svc):
    user = await svc.enroll("Ada", "ada@example.com", "secret")
    user.verify_email()
    await container.users.save(user)
    return user


async def test_recovery_for_unknown_email_is_silent(container, svc):
    await svc.initiate_password_recovery("ghost@example.com")
    assert _tokens(container, TokenType.PASSWORD_RECOVERY) == []


async def test_recovery_requires_verified_email(svc):
    await svc.enroll("Ada", "ada@example.com", "secret")
    with pytest.raises(EmailNotVerifiedError):
        await svc.initiate_password_recovery("ada@example.com")


async def test_reset_password_with_recovery_token(container, svc):
    user = await _verified_user(container, svc)
    await svc.initiate_password_recovery("ada@example.com")
    token = _tokens(container, TokenType.PASSWORD_RECOVERY)[0]

    await svc.reset_password(token.token, "n3w!Secret")

    assert user.password_hash == "n3w!Secret-hashed"
    assert _tokens(container, TokenType.PASSWORD_RECOVERY) == []


async def test_reset_password_rejects_verify_tokens(container, svc):
    await svc.enroll("Ada", "ada@example.com", "secret")
    verify = _tokens(container, TokenType.EMAIL_VERIFY)[0]

    with pytest.raises(ResourceNotFoundError):
        await svc.reset_password(verify.token, "n3w!Secret")
