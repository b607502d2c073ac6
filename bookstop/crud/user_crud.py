import logging
from typing import Any, Dict, Optional

from sqlmodel import select, delete
from sqlmodel.ext.asyncio.session import AsyncSession

from bookstop.core.exception_utils import handle_exceptions
from bookstop.core.exceptions import InternalServerError, ResourceAlreadyExists
from bookstop.crud.base_crud import BaseRepository, DB_ERROR_MESSAGE
from bookstop.models.list_model import BookList, ListBook
from bookstop.models.review_model import Review, ReviewEdit
from bookstop.models.user_book_model import UserBook
from bookstop.models.user_model import User


class UserRepository(BaseRepository[User]):
    def __init__(self):
        super().__init__(User)
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get(self, db: AsyncSession, *, obj_id: int) -> Optional[User]:
        statement = select(self.model).where(self.model.id == obj_id)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_by_email(self, db: AsyncSession, *, email: str) -> Optional[User]:
        statement = select(self.model).where(self.model.email == email.lower())
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_by_username(self, db: AsyncSession, *, username: str) -> Optional[User]:
        statement = select(self.model).where(self.model.username == username)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(
        default_exception=InternalServerError,
        message=DB_ERROR_MESSAGE,
        integrity_exception=ResourceAlreadyExists,
        integrity_message="Username or email already in use",
    )
    async def create(self, db: AsyncSession, *, obj_in: User) -> User:
        db.add(obj_in)
        await db.commit()
        await db.refresh(obj_in)
        self._logger.info(f"User created: {obj_in.id}")
        return obj_in

    @handle_exceptions(
        default_exception=InternalServerError,
        message=DB_ERROR_MESSAGE,
        integrity_exception=ResourceAlreadyExists,
        integrity_message="Username already in use",
    )
    async def update(
        self, db: AsyncSession, *, user: User, fields_to_update: Dict[str, Any]
    ) -> User:
        for field, value in fields_to_update.items():
            setattr(user, field, value)

        db.add(user)
        await db.commit()
        await db.refresh(user)
        self._logger.info(
            f"User fields updated for {user.id}: {[f for f in fields_to_update if f != 'hashed_password']}"
        )
        return user

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def delete(self, db: AsyncSession, *, obj_id: int) -> None:
        """Hard-deletes a user together with everything they own."""
        review_ids = select(Review.id).where(Review.user_id == obj_id)
        list_ids = select(BookList.id).where(BookList.user_id == obj_id)

        await db.execute(delete(ReviewEdit).where(ReviewEdit.review_id.in_(review_ids)))
        await db.execute(delete(Review).where(Review.user_id == obj_id))
        await db.execute(delete(ListBook).where(ListBook.list_id.in_(list_ids)))
        await db.execute(delete(BookList).where(BookList.user_id == obj_id))
        await db.execute(delete(UserBook).where(UserBook.user_id == obj_id))
        await db.execute(delete(self.model).where(self.model.id == obj_id))
        await db.commit()
        self._logger.info(f"User hard deleted: {obj_id}")


user_repository = UserRepository()
