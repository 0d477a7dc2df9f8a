"""Conversions between domain entities and their stored forms.

Rows come from db/models.py (SQL) or JSON documents (Redis). Rehydration
goes through the entity constructors, never the create() factories, so
loading an aggregate never raises "created" domain events.
"""

import json
from datetime import datetime
from typing import Any

from tasksync.core.entities import UniqueEntityID
from tasksync.db.models import EmailRequestRecord, TaskRecord, UserRecord
from tasksync.domain.email_requests import (
    EmailEventType,
    EmailPriority,
    EmailRequest,
    EmailRequestProps,
    EmailStatus,
    EmailTemplate,
)
from tasksync.domain.tasks import (
    Slug,
    Task,
    TaskAttachment,
    TaskAttachmentList,
    TaskPriority,
    TaskProps,
    TaskStatus,
)
from tasksync.domain.tokens import (
    AuthToken,
    AuthTokenProps,
    TokenType,
    VerificationToken,
    VerificationTokenProps,
)
from tasksync.domain.users import User, UserProps


class UserMapper:
    @staticmethod
    def to_domain(row: UserRecord) -> User:
        return User(
            UserProps(
                name=row.name,
                email=row.email,
                password_hash=row.password_hash,
                avatar_url=row.avatar_url,
                email_verified=bool(row.email_verified),
                created_at=row.created_at,
                updated_at=row.updated_at,
            ),
            UniqueEntityID(str(row.id)),
        )

    @staticmethod
    def to_persistence(user: User) -> dict[str, Any]:
        return {
            "id": user.id.value,
            "name": user.name,
            "email": user.email,
            "password_hash": user.password_hash,
            "avatar_url": user.avatar_url,
            "email_verified": user.email_verified,
            "created_at": user.created_at,
            "updated_at": user.updated_at,
        }


class EmailRequestMapper:
    @staticmethod
    def to_domain(row: EmailRequestRecord) -> EmailRequest:
        return EmailRequest(
            EmailRequestProps(
                event_type=EmailEventType(row.event_type),
                recipient_id=UniqueEntityID(str(row.recipient_id)),
                recipient_email=row.recipient_email,
                subject=row.subject,
                template_name=EmailTemplate(row.template_name),
                data=dict(row.data or {}),
                status=EmailStatus(row.status),
                priority=EmailPriority(row.priority),
                created_at=row.created_at,
                updated_at=row.updated_at,
            ),
            UniqueEntityID(str(row.id)),
        )

    @staticmethod
    def to_persistence(email_request: EmailRequest) -> dict[str, Any]:
        return {
            "id": email_request.id.value,
            "event_type": email_request.event_type.value,
            "recipient_id": email_request.recipient_id.value,
            "recipient_email": email_request.recipient_email,
            "subject": email_request.subject,
            "template_name": email_request.template_name.value,
            "data": email_request.data,
            "status": email_request.status.value,
            "priority": email_request.priority.value,
            "created_at": email_request.created_at,
            "updated_at": email_request.updated_at,
        }


class TaskMapper:
    @staticmethod
    def to_domain(row: TaskRecord) -> Task:
        task_id = UniqueEntityID(str(row.id))
        attachments = TaskAttachmentList(
            TaskAttachment.create(task_id=task_id, attachment_id=UniqueEntityID(str(a)))
            for a in row.attachment_ids or []
        )
        return Task(
            TaskProps(
                title=row.title,
                slug=Slug(row.slug),
                project_id=UniqueEntityID(str(row.project_id)),
                created_by=UniqueEntityID(str(row.created_by)),
                description=row.description or "",
                assigned_to=[UniqueEntityID(str(a)) for a in row.assigned_to or []],
                status=TaskStatus(row.status),
                priority=TaskPriority(row.priority),
                due_date=row.due_date,
                completed_at=row.completed_at,
                tags=list(row.tags or []),
                attachments=attachments,
                created_at=row.created_at,
                updated_at=row.updated_at,
            ),
            task_id,
        )

    @staticmethod
    def to_persistence(task: Task) -> dict[str, Any]:
        return {
            "id": task.id.value,
            "title": task.title,
            "slug": task.slug.value,
            "description": task.description,
            "project_id": task.project_id.value,
            "created_by": task.created_by.value,
            "assigned_to": [a.value for a in task.assigned_to],
            "status": task.status.value,
            "priority": task.priority.value,
            "due_date": task.due_date,
            "completed_at": task.completed_at,
            "tags": task.tags,
            "attachment_ids": [
                a.attachment_id.value for a in task.attachments.get_items()
            ],
            "created_at": task.created_at,
            "updated_at": task.updated_at,
        }


# ─── Redis documents ─────────────────────────────────


class AuthTokenMapper:
    @staticmethod
    def to_redis(auth_token: AuthToken) -> str:
        return json.dumps(
            {
                "id": auth_token.id.value,
                "user_id": auth_token.user_id.value,
                "refresh_token": auth_token.refresh_token,
                "expires_at": auth_token.expires_at.isoformat(),
                "created_at": auth_token.created_at.isoformat(),
            }
        )

    @staticmethod
    def from_redis(raw: str) -> AuthToken:
        doc = json.loads(raw)
        return AuthToken(
            AuthTokenProps(
                user_id=UniqueEntityID(doc["user_id"]),
                refresh_token=doc["refresh_token"],
                expires_at=datetime.fromisoformat(doc["expires_at"]),
                created_at=datetime.fromisoformat(doc["created_at"]),
            ),
            UniqueEntityID(doc["id"]),
        )


class VerificationTokenMapper:
    @staticmethod
    def to_redis(verification: VerificationToken) -> str:
        return json.dumps(
            {
                "id": verification.id.value,
                "user_id": verification.user_id.value,
                "token": verification.token,
                "token_hash": verification.token_hash,
                "type": verification.type.value,
                "expires_at": verification.expires_at.isoformat(),
                "created_at": verification.created_at.isoformat(),
            }
        )

    @staticmethod
    def from_redis(raw: str) -> VerificationToken:
        doc = json.loads(raw)
        return VerificationToken(
            VerificationTokenProps(
                user_id=UniqueEntityID(doc["user_id"]),
                token=doc["token"],
                token_hash=doc["token_hash"],
                type=TokenType(doc["type"]),
                expires_at=datetime.fromisoformat(doc["expires_at"]),
                created_at=datetime.fromisoformat(doc["created_at"]),
            ),
            UniqueEntityID(doc["id"]),
        )
