"""Users, tokens, tasks and email requests: domain rules only, no I/O."""

from datetime import timedelta

import pytest

from tasksync.core.clock import utcnow
from tasksync.core.entities import UniqueEntityID
from tasksync.domain.email_requests import (
    EmailEventType,
    EmailPriority,
    EmailRequest,
    EmailStatus,
    EmailStatusTransitionError,
    EmailTemplate,
)
from tasksync.domain.events import (
    EmailUpdateVerificationRequestedEvent,
    EmailVerificationRequestedEvent,
    PasswordRecoveryRequestedEvent,
    PasswordResetEvent,
    UserRegisteredEvent,
)
from tasksync.domain.tasks import (
    Slug,
    Task,
    TaskAttachment,
    TaskAttachmentList,
    TaskPriority,
    TaskStatus,
)
from tasksync.domain.tokens import AuthToken, TokenType, VerificationToken, hash_token
from tasksync.domain.users import User


# ═══════════════════════════════════════════════════════════
# User
# ═══════════════════════════════════════════════════════════


def test_new_user_raises_registered_event():
    user = User.create(name="Ada", email="ada@example.com", password_hash="h")
    assert [type(e) for e in user.domain_events] == [UserRegisteredEvent]
    assert user.email_verified is False
    assert user.updated_at is None


def test_rehydrated_user_raises_no_event():
    user = User.create(
        name="Ada", email="ada@example.com", password_hash="h", id=UniqueEntityID("u-1")
    )
    assert user.domain_events == []


def test_setters_touch_updated_at():
    user = User.create(name="Ada", email="ada@example.com", password_hash="h")
    user.name = "Ada L."
    assert user.updated_at is not None


def test_verify_email_only_touches_on_change():
    user = User.create(
        name="Ada", email="ada@example.com", password_hash="h", email_verified=True
    )
    user.verify_email()
    assert user.updated_at is None

    user.reset_email_verification()
    assert user.email_verified is False
    assert user.updated_at is not None


def test_reset_password_raises_event():
    user = User.create(
        name="Ada", email="ada@example.com", password_hash="h", id=UniqueEntityID()
    )
    user.reset_password("new")
    assert user.password_hash == "new"
    assert [type(e) for e in user.domain_events] == [PasswordResetEvent]


# ═══════════════════════════════════════════════════════════
# Tokens
# ═══════════════════════════════════════════════════════════


@pytest.mark.parametrize(
    "token_type,event_cls",
    [
        (TokenType.EMAIL_VERIFY, EmailVerificationRequestedEvent),
        (TokenType.EMAIL_UPDATE_VERIFY, EmailUpdateVerificationRequestedEvent),
        (TokenType.PASSWORD_RECOVERY, PasswordRecoveryRequestedEvent),
    ],
)
def test_verification_token_raises_event_for_its_type(token_type, event_cls):
    token = VerificationToken.create(user_id=UniqueEntityID(), type=token_type)
    assert [type(e) for e in token.domain_events] == [event_cls]


def test_password_reset_token_raises_no_event():
    token = VerificationToken.create(user_id=UniqueEntityID(), type=TokenType.PASSWORD_RESET)
    assert token.domain_events == []


def test_verification_token_checks_hash_and_expiry():
    token = VerificationToken.create(user_id=UniqueEntityID(), type=TokenType.EMAIL_VERIFY)

    assert token.token_hash == hash_token(token.token)
    assert token.verify_token(token.token)
    assert not token.verify_token("something-else")
    assert token.is_valid_token(token.token)
    assert token.key == f"email:verify:{token.token}"

    later = utcnow() + timedelta(hours=25)
    assert token.is_expired(now=later)


def test_verification_token_expired_when_expiry_in_past():
    token = VerificationToken.create(
        user_id=UniqueEntityID(),
        type=TokenType.EMAIL_VERIFY,
        expires_at=utcnow() - timedelta(seconds=1),
    )
    assert token.is_expired()
    assert not token.is_valid_token(token.token)


def test_auth_token_expiry():
    token = AuthToken.create(
        user_id=UniqueEntityID(),
        refresh_token="r",
        expires_at=utcnow() + timedelta(days=7),
    )
    assert not token.is_expired()
    assert token.is_expired(now=utcnow() + timedelta(days=8))


# ═══════════════════════════════════════════════════════════
# Tasks
# ═══════════════════════════════════════════════════════════


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Fix Login Bug!", "fix-login-bug"),
        ("  Café  déjà vu  ", "cafe-deja-vu"),
        ("snake_case   title--", "snake-case-title"),
    ],
)
def test_slug_from_text(text, expected):
    assert Slug.create_from_text(text).value == expected


def _task(**kwargs) -> Task:
    defaults = dict(
        title="Write docs",
        project_id=UniqueEntityID(),
        created_by=UniqueEntityID(),
    )
    defaults.update(kwargs)
    return Task.create(**defaults)


def test_task_defaults():
    task = _task(tags=["docs", " docs ", "", "api"])
    assert task.status is TaskStatus.TODO
    assert task.priority is TaskPriority.MEDIUM
    assert task.slug.value == "write-docs"
    assert task.tags == ["docs", "api"]
    assert task.updated_at is None


def test_task_title_change_regenerates_slug():
    task = _task()
    task.title = "Ship Release 2"
    assert task.slug.value == "ship-release-2"
    assert task.updated_at is not None


def test_task_status_walks_forward_to_done():
    task = _task()
    assert task.advance_status() is TaskStatus.IN_PROGRESS
    assert task.advance_status() is TaskStatus.REVIEW
    assert task.completed_at is None
    assert task.advance_status() is TaskStatus.DONE
    assert task.completed_at is not None

    with pytest.raises(ValueError):
        task.advance_status()


def test_task_overdue_flags():
    task = _task(due_date=utcnow() - timedelta(days=1))
    assert task.is_overdue
    assert task.is_overdue_and_not_completed

    task.status = TaskStatus.DONE
    assert not task.is_overdue_and_not_completed
    assert task.is_completed_late


def test_task_not_overdue_without_due_date():
    task = _task()
    assert not task.is_overdue
    assert not task.is_completed_late


def test_task_finished_on_time_stays_on_time_after_due_date_passes():
    due = utcnow() - timedelta(days=1)
    task = _task(
        due_date=due,
        status=TaskStatus.DONE,
        completed_at=due - timedelta(days=2),
    )
    assert task.is_completed_late is False
    assert task.is_overdue_and_not_completed is False
    assert task.is_overdue is False


def test_attachment_list_tracks_changes():
    task_id = UniqueEntityID()
    a = TaskAttachment.create(task_id=task_id, attachment_id=UniqueEntityID("a"))
    b = TaskAttachment.create(task_id=task_id, attachment_id=UniqueEntityID("b"))
    c = TaskAttachment.create(task_id=task_id, attachment_id=UniqueEntityID("c"))

    attachments = TaskAttachmentList([a, b])
    attachments.update([b, c])

    assert [x.attachment_id.value for x in attachments.get_items()] == ["b", "c"]
    assert [x.attachment_id.value for x in attachments.new_items] == ["c"]
    assert [x.attachment_id.value for x in attachments.removed_items] == ["a"]

    attachments.add(a)
    assert attachments.removed_items == []
    assert len(attachments) == 3


def test_attachment_removed_before_save_is_forgotten():
    attachments = TaskAttachmentList()
    item = TaskAttachment.create(task_id=UniqueEntityID(), attachment_id=UniqueEntityID())
    attachments.add(item)
    attachments.remove(item)
    assert attachments.new_items == []
    assert attachments.removed_items == []


# ═══════════════════════════════════════════════════════════
# Email requests
# ═══════════════════════════════════════════════════════════


def _email_request(**kwargs) -> EmailRequest:
    defaults = dict(
        event_type=EmailEventType.USER_REGISTERED,
        recipient_id=UniqueEntityID(),
        recipient_email="ada@example.com",
        template_name=EmailTemplate.WELCOME,
    )
    defaults.update(kwargs)
    return EmailRequest.create(**defaults)


def test_email_request_defaults_subject_from_event_type():
    request = _email_request()
    assert request.subject == "Welcome to TaskSync"
    assert request.status is EmailStatus.PENDING
    assert request.priority is EmailPriority.MEDIUM


def test_email_request_status_flow():
    request = _email_request()
    assert request.advance_status() is EmailStatus.PROCESSING
    assert request.advance_status() is EmailStatus.SENT
    with pytest.raises(EmailStatusTransitionError):
        request.advance_status()


def test_failed_email_request_cannot_advance():
    request = _email_request()
    request.mark_as_failed()
    with pytest.raises(EmailStatusTransitionError):
        request.advance_status()


def test_priority_queue_values_order_urgent_first():
    ordered = sorted(EmailPriority, key=lambda p: p.queue_value, reverse=True)
    assert ordered == [
        EmailPriority.URGENT,
        EmailPriority.HIGH,
        EmailPriority.MEDIUM,
        EmailPriority.LOW,
    ]
