"""Accounts API: sign-up, email confirmation, password recovery."""

from fastapi import APIRouter, Depends, HTTPException, Query

from tasksync.api.deps import get_account_service
from tasksync.core.errors import (
    EmailAlreadyInUseError,
    EmailNotVerifiedError,
    ResourceGoneError,
    ResourceInvalidError,
    ResourceNotFoundError,
)
from tasksync.schemas.account import (
    ForgotPasswordRequest,
    MessageResponse,
    ResetPasswordRequest,
    SignUpRequest,
    UserRead,
)
from tasksync.services.account_service import AccountService

router = APIRouter()


def _token_error(e: Exception) -> HTTPException:
    """Map verification-token failures to HTTP statuses."""
    if isinstance(e, ResourceNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ResourceGoneError):
        return HTTPException(status_code=410, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


@router.post("/sign-up", response_model=UserRead, status_code=201)
async def sign_up(body: SignUpRequest, svc: AccountService = Depends(get_account_service)):
    """Create an account and email a verification link."""
    try:
        user = await svc.enroll(name=body.name, email=body.email, password=body.password)
    except EmailAlreadyInUseError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return UserRead.from_entity(user)


@router.get("/confirm-email", response_model=MessageResponse)
async def confirm_email(
    token: str = Query(..., min_length=1),
    svc: AccountService = Depends(get_account_service),
):
    try:
        await svc.confirm_email(token)
    except (ResourceNotFoundError, ResourceGoneError, ResourceInvalidError) as e:
        raise _token_error(e)
    return MessageResponse(message="Email confirmed")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    svc: AccountService = Depends(get_account_service),
):
    """Always answers the same way for unknown emails (no account probing)."""
    try:
        await svc.initiate_password_recovery(body.email)
    except EmailNotVerifiedError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return MessageResponse(message="If the account exists, a recovery email was sent")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: ResetPasswordRequest,
    svc: AccountService = Depends(get_account_service),
):
    try:
        await svc.reset_password(body.token, body.new_password)
    except (ResourceNotFoundError, ResourceGoneError, ResourceInvalidError) as e:
        raise _token_error(e)
    return MessageResponse(message="Password updated")
