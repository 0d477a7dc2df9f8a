"""Profile API: current user, profile edits, avatar upload."""

from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Path, UploadFile

from tasksync.api.deps import get_profile_service
from tasksync.auth.dependencies import CurrentIdentity, get_current_user
from tasksync.config import settings
from tasksync.core.entities import UniqueEntityID
from tasksync.core.errors import (
    EmailAlreadyInUseError,
    InvalidAvatarTypeError,
    ResourceNotFoundError,
)
from tasksync.observability.metrics import record_business_event
from tasksync.schemas.account import AvatarUrlRead, ProfileUpdate, UserRead
from tasksync.services.profile_service import ProfileService
from tasksync.utils import bytes_to_readable

router = APIRouter()

# {uuid}-{epoch_ms}.{ext}, as produced by the storage adapters
AVATAR_KEY_PATTERN = (
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"
    r"-\d+\.(jpeg|jpg|png|gif|webp)$"
)


@router.get("/me", response_model=UserRead)
async def get_me(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: ProfileService = Depends(get_profile_service),
):
    try:
        user = await svc.retrieve(UniqueEntityID(identity.user_id))
    except ResourceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return UserRead.from_entity(user)


@router.put("/me", response_model=UserRead)
async def update_me(
    body: ProfileUpdate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: ProfileService = Depends(get_profile_service),
):
    try:
        user = await svc.refine(
            UniqueEntityID(identity.user_id),
            name=body.name,
            email=body.email,
            new_password=body.new_password,
        )
    except ResourceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except EmailAlreadyInUseError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return UserRead.from_entity(user)


@router.post("/upload-avatar", response_model=UserRead)
async def upload_avatar(
    file: Optional[UploadFile] = File(None),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: ProfileService = Depends(get_profile_service),
):
    """Multipart upload (field `file`), max 2 MB, png/jpg/jpeg/webp."""
    if file is None:
        raise HTTPException(status_code=400, detail="File is required")

    body = await file.read()
    if len(body) > settings.avatar_max_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"File exceeds the maximum size of {bytes_to_readable(settings.avatar_max_bytes)}",
        )

    try:
        user = await svc.upload_avatar(
            UniqueEntityID(identity.user_id),
            filename=file.filename or "avatar",
            content_type=file.content_type or "",
            body=body,
        )
    except ResourceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidAvatarTypeError as e:
        record_business_event("upload", "avatar", status="rejected", user_id=identity.user_id)
        raise HTTPException(status_code=415, detail=str(e))

    record_business_event("upload", "avatar", user_id=identity.user_id)
    return UserRead.from_entity(user)


@router.get("/avatar/url/{key}", response_model=AvatarUrlRead)
async def get_avatar_url(
    key: str = Path(..., pattern=AVATAR_KEY_PATTERN),
    svc: ProfileService = Depends(get_profile_service),
):
    """Signed, time-limited URL for an avatar object."""
    signed = await svc.avatar_signed_url(key)
    return AvatarUrlRead(url=signed.url, expires_at=signed.expires_at)
