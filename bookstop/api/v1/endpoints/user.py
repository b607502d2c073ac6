import logging

from fastapi import APIRouter, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession

from bookstop.core.config import settings
from bookstop.db.session import get_session
from bookstop.models.user_model import User
from bookstop.schemas.common_schema import MessageResponse
from bookstop.schemas.user_schema import (
    AccountDelete,
    PasswordChange,
    UserEnvelope,
    UserPublicResponse,
    UserUpdate,
)
from bookstop.services.user_service import user_service
from bookstop.utils.deps import get_current_user, rate_limit_api, rate_limit_heavy

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"], prefix=f"{settings.API_PREFIX}/user")


@router.get(
    "/{user_id}",
    status_code=status.HTTP_200_OK,
    response_model=UserEnvelope,
    summary="Get a user's public profile",
    dependencies=[Depends(rate_limit_api)],
)
async def get_user(
    *,
    user_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    user = await user_service.get_user_by_id(db=db, user_id=user_id)
    return UserEnvelope(user=UserPublicResponse.model_validate(user))


@router.put(
    "/{user_id}",
    status_code=status.HTTP_200_OK,
    response_model=UserEnvelope,
    summary="Update your profile",
    description="Changing the username requires `current_password`",
    dependencies=[Depends(rate_limit_api)],
)
async def update_user(
    *,
    user_id: int,
    user_in: UserUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    user = await user_service.update_user(
        db=db, user_id=user_id, user_in=user_in, current_user=current_user
    )
    return UserEnvelope(
        message="Profile updated successfully", user=UserPublicResponse.model_validate(user)
    )


@router.put(
    "/{user_id}/password",
    status_code=status.HTTP_200_OK,
    response_model=MessageResponse,
    summary="Change your password",
    dependencies=[Depends(rate_limit_heavy)],
)
async def change_password(
    *,
    user_id: int,
    password_in: PasswordChange,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    await user_service.change_password(
        db=db, user_id=user_id, password_in=password_in, current_user=current_user
    )
    return MessageResponse(message="Password changed successfully")


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_200_OK,
    response_model=MessageResponse,
    summary="Delete your account",
    description="Permanently deletes the account with its statuses, reviews and lists",
    dependencies=[Depends(rate_limit_heavy)],
)
async def delete_user(
    *,
    user_id: int,
    confirmation: AccountDelete,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    await user_service.delete_user(
        db=db, user_id=user_id, confirmation=confirmation, current_user=current_user
    )
    return MessageResponse(message="Account deleted successfully")
