"""
User service module.

Profile reads and the self-service account operations: profile edits,
password change and account deletion.
"""

import logging
from typing import Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from bookstop.core.exception_utils import raise_for_status
from bookstop.core.exceptions import (
    InvalidCredentials,
    NotAuthorized,
    ResourceAlreadyExists,
    ResourceNotFound,
    ValidationError,
)
from bookstop.core.security import password_manager
from bookstop.crud.user_crud import user_repository
from bookstop.models.user_model import User
from bookstop.schemas.user_schema import AccountDelete, PasswordChange, UserUpdate

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self):
        self.user_repository = user_repository
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def _check_authorization(self, current_user: User, user_id: int, action: str) -> None:
        """Users may only manage their own account."""
        if current_user.id != user_id:
            self._logger.warning(
                f"User {current_user.id} attempted to {action} user {user_id}"
            )
            raise NotAuthorized(f"You are not authorized to {action} this user.")

    def _verify_password(self, user: User, password: Optional[str]) -> None:
        raise_for_status(
            condition=not password
            or not password_manager.verify_password(password, user.hashed_password),
            exception=InvalidCredentials,
            detail="Password is incorrect",
        )

    async def get_user_for_auth(self, db: AsyncSession, *, user_id: int) -> Optional[User]:
        """Lookup used by the auth dependency; returns None instead of raising."""
        return await self.user_repository.get(db=db, obj_id=user_id)

    async def get_user_by_id(self, db: AsyncSession, *, user_id: int) -> User:
        user = await self.user_repository.get(db=db, obj_id=user_id)
        raise_for_status(
            condition=user is None,
            exception=ResourceNotFound,
            resource_type="User",
            detail="User not found",
        )
        return user

    async def update_user(
        self, db: AsyncSession, *, user_id: int, user_in: UserUpdate, current_user: User
    ) -> User:
        self._check_authorization(current_user, user_id, "update")
        user = await self.get_user_by_id(db, user_id=user_id)

        update_data = user_in.model_dump(exclude_unset=True, exclude={"current_password"})
        # display_name and username cannot be cleared
        for field in ("display_name", "username"):
            if field in update_data and update_data[field] is None:
                del update_data[field]

        new_username = update_data.get("username")
        if new_username is not None and new_username != user.username:
            self._verify_password(user, user_in.current_password)
            existing = await self.user_repository.get_by_username(db, username=new_username)
            raise_for_status(
                condition=existing is not None,
                exception=ResourceAlreadyExists,
                detail="Username already in use",
            )
        else:
            update_data.pop("username", None)

        if "bio" in update_data and update_data["bio"] is None:
            update_data["bio"] = ""

        if not update_data:
            return user

        user = await self.user_repository.update(db=db, user=user, fields_to_update=update_data)
        self._logger.info(f"User {user.id} updated profile fields {list(update_data)}")
        return user

    async def change_password(
        self, db: AsyncSession, *, user_id: int, password_in: PasswordChange, current_user: User
    ) -> None:
        self._check_authorization(current_user, user_id, "change the password of")
        user = await self.get_user_by_id(db, user_id=user_id)

        self._verify_password(user, password_in.current_password)
        raise_for_status(
            condition=password_in.new_password == password_in.current_password,
            exception=ValidationError,
            detail="New password must be different from the current password",
        )

        await self.user_repository.update(
            db=db,
            user=user,
            fields_to_update={
                "hashed_password": password_manager.hash_password(password_in.new_password)
            },
        )
        self._logger.info(f"Password changed for user {user.id}")

    async def delete_user(
        self, db: AsyncSession, *, user_id: int, confirmation: AccountDelete, current_user: User
    ) -> None:
        self._check_authorization(current_user, user_id, "delete")
        user = await self.get_user_by_id(db, user_id=user_id)
        self._verify_password(user, confirmation.password)

        await self.user_repository.delete(db=db, obj_id=user.id)
        self._logger.warning(f"User account deleted: {user_id}")


user_service = UserService()
