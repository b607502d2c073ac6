"""
Book lists: named, ordered collections of books with derived metadata.

Every membership change (create with books, add, remove) recomputes the
list's metadata from its member books and is saved with a version check,
so two concurrent edits cannot silently overwrite each other.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from sqlmodel.ext.asyncio.session import AsyncSession

from bookstop.core.exception_utils import raise_for_status
from bookstop.core.exceptions import (
    NotAuthorized,
    ResourceAlreadyExists,
    ResourceNotFound,
    ValidationError,
)
from bookstop.crud.book_crud import book_repository
from bookstop.crud.list_crud import book_list_repository
from bookstop.models.book_model import Book
from bookstop.models.list_model import BookList, ListBook, ListVisibility
from bookstop.schemas.common_schema import PagePagination
from bookstop.schemas.list_schema import (
    AddBookRequest,
    LikeResponse,
    ListCollectionResponse,
    ListCreate,
    ListMetadata,
    ListResponse,
    ListUpdate,
    ReorderRequest,
)
from bookstop.services.list_metadata import compute_list_metadata

logger = logging.getLogger(__name__)

LIKE_ACTIONS = {"like": 1, "unlike": -1}


class ListService:
    def __init__(self):
        self.book_repository = book_repository
        self.book_list_repository = book_list_repository
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    # ======= HELPERS =======
    def _check_read_access(self, book_list: BookList, viewer_id: Optional[int]) -> None:
        """Public lists are readable by anyone; private and friends lists only by their owner."""
        if book_list.visibility == ListVisibility.PUBLIC.value:
            return
        raise_for_status(
            condition=not book_list.is_owned_by(viewer_id),
            exception=NotAuthorized,
            detail="Access denied",
        )

    def _check_authorization(self, book_list: BookList, user_id: int, action: str) -> None:
        if not book_list.is_owned_by(user_id):
            self._logger.warning(
                f"User {user_id} attempted to {action} list {book_list.id} owned by {book_list.user_id}"
            )
            raise NotAuthorized(f"Not authorized to {action} this list")

    async def _get_list(self, db: AsyncSession, *, list_id: int) -> BookList:
        book_list = await self.book_list_repository.get(db=db, obj_id=list_id)
        raise_for_status(
            condition=book_list is None,
            exception=ResourceNotFound,
            resource_type="List",
            detail="List not found",
        )
        return book_list

    async def _get_owned_list(
        self, db: AsyncSession, *, list_id: int, user_id: int, action: str
    ) -> BookList:
        book_list = await self._get_list(db, list_id=list_id)
        self._check_authorization(book_list, user_id, action)
        return book_list

    async def _metadata_for(self, db: AsyncSession, book_ids: Sequence[int]) -> ListMetadata:
        """Recomputes list metadata for the given member ids, in member order."""
        books = await self.book_repository.get_by_ids(db=db, ids=book_ids)
        by_id: Dict[int, Book] = {book.id: book for book in books}
        return compute_list_metadata(by_id[book_id] for book_id in book_ids if book_id in by_id)

    def _collection(
        self, lists: List[BookList], *, total: int, page: int, limit: int
    ) -> ListCollectionResponse:
        return ListCollectionResponse(
            lists=[ListResponse.model_validate(book_list) for book_list in lists],
            pagination=PagePagination.build(page=page, limit=limit, total=total),
        )

    # ======= READ OPERATIONS =======
    async def get_list(
        self, db: AsyncSession, *, list_id: int, viewer_id: Optional[int] = None
    ) -> BookList:
        book_list = await self._get_list(db, list_id=list_id)
        self._check_read_access(book_list, viewer_id)
        return book_list

    async def get_lists(
        self,
        db: AsyncSession,
        *,
        viewer_id: Optional[int] = None,
        user_id: Optional[int] = None,
        visibility: Optional[ListVisibility] = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> ListCollectionResponse:
        """Lists the viewer may read: public ones plus their own, optionally narrowed."""
        filters = {
            "user_id": user_id,
            "visibility": visibility.value if visibility else None,
            "readable_by": viewer_id,
        }
        lists, total = await self.book_list_repository.get_many(
            db=db,
            skip=(page - 1) * limit,
            limit=limit,
            filters=filters,
            order_by=sort_by,
            order_desc=sort_order != "asc",
        )
        return self._collection(lists, total=total, page=page, limit=limit)

    async def get_public_lists(
        self, db: AsyncSession, *, page: int = 1, limit: int = 10, sort_by: str = "created_at"
    ) -> ListCollectionResponse:
        return await self.get_lists(
            db, visibility=ListVisibility.PUBLIC, page=page, limit=limit, sort_by=sort_by
        )

    async def get_user_lists(
        self,
        db: AsyncSession,
        *,
        user_id: int,
        viewer_id: Optional[int] = None,
        visibility: Optional[ListVisibility] = None,
        page: int = 1,
        limit: int = 10,
    ) -> ListCollectionResponse:
        """A user's lists; other users only ever see the public ones."""
        return await self.get_lists(
            db,
            viewer_id=viewer_id,
            user_id=user_id,
            visibility=visibility,
            page=page,
            limit=limit,
        )

    async def search_lists(
        self,
        db: AsyncSession,
        *,
        q: str,
        viewer_id: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
    ) -> ListCollectionResponse:
        raise_for_status(
            condition=not q or not q.strip(),
            exception=ValidationError,
            detail="Search query is required",
        )
        lists, total = await self.book_list_repository.get_many(
            db=db,
            skip=(page - 1) * limit,
            limit=limit,
            filters={"search": q.strip(), "readable_by": viewer_id},
        )
        return self._collection(lists, total=total, page=page, limit=limit)

    # ======= WRITE OPERATIONS =======
    async def create_list(self, db: AsyncSession, *, user_id: int, list_in: ListCreate) -> BookList:
        """
        Raises:
            ValidationError: Blank title, duplicate initial books, or an initial
                book that does not exist (nothing is created in that case).
        """
        raise_for_status(
            condition=not list_in.title,
            exception=ValidationError,
            detail="List title is required",
        )

        book_ids = [item.book_id for item in list_in.books]
        raise_for_status(
            condition=len(set(book_ids)) != len(book_ids),
            exception=ValidationError,
            detail="A book can only appear once in a list",
        )
        metadata = await self._metadata_for(db, book_ids)
        raise_for_status(
            condition=metadata.total_books != len(book_ids),
            exception=ValidationError,
            detail="One or more books not found",
        )

        book_list = BookList(
            user_id=user_id,
            title=list_in.title,
            description=list_in.description,
            visibility=list_in.visibility.value,
            tags=list_in.tags,
            total_books=metadata.total_books,
            average_rating=metadata.average_rating,
            genres=metadata.genres,
        )
        for index, item in enumerate(list_in.books):
            book_list.books.append(
                ListBook(
                    book_id=item.book_id,
                    order=item.order if item.order is not None else index,
                    note=item.note,
                )
            )

        book_list = await self.book_list_repository.create(db=db, obj_in=book_list)
        self._logger.info(
            f"List {book_list.id} created by user {user_id} with {book_list.total_books} books"
        )
        return book_list

    async def update_list(
        self, db: AsyncSession, *, list_id: int, user_id: int, list_in: ListUpdate
    ) -> BookList:
        book_list = await self._get_owned_list(db, list_id=list_id, user_id=user_id, action="update")

        fields = {}
        if list_in.title is not None and list_in.title.strip():
            fields["title"] = list_in.title.strip()
        if list_in.description is not None:
            fields["description"] = list_in.description.strip()
        if list_in.visibility in {v.value for v in ListVisibility}:
            fields["visibility"] = list_in.visibility
        if list_in.tags is not None:
            fields["tags"] = list_in.tags

        if not fields:
            return book_list
        return await self.book_list_repository.update(
            db=db, book_list=book_list, fields_to_update=fields
        )

    async def delete_list(self, db: AsyncSession, *, list_id: int, user_id: int) -> None:
        book_list = await self._get_owned_list(db, list_id=list_id, user_id=user_id, action="delete")
        await self.book_list_repository.delete(db=db, book_list=book_list)
        self._logger.warning(f"List {list_id} deleted by user {user_id}")

    async def add_book_to_list(
        self, db: AsyncSession, *, list_id: int, user_id: int, add_in: AddBookRequest
    ) -> BookList:
        book_list = await self._get_owned_list(db, list_id=list_id, user_id=user_id, action="modify")

        book = await self.book_repository.get(db=db, obj_id=add_in.book_id)
        raise_for_status(
            condition=book is None,
            exception=ResourceNotFound,
            resource_type="Book",
            detail="Book not found",
        )
        member_ids = [member.book_id for member in book_list.books]
        raise_for_status(
            condition=book.id in member_ids,
            exception=ResourceAlreadyExists,
            detail="Book is already in this list",
        )

        expected_version = book_list.version
        metadata = await self._metadata_for(db, member_ids + [book.id])
        book_list.books.append(
            ListBook(
                book_id=book.id,
                order=add_in.order if add_in.order is not None else len(member_ids),
                note=add_in.note,
            )
        )

        book_list = await self.book_list_repository.save_membership(
            db=db, book_list=book_list, expected_version=expected_version, metadata=metadata
        )
        self._logger.info(f"Book {book.id} added to list {list_id}")
        return book_list

    async def remove_book_from_list(
        self, db: AsyncSession, *, list_id: int, user_id: int, book_id: int
    ) -> BookList:
        book_list = await self._get_owned_list(db, list_id=list_id, user_id=user_id, action="modify")

        member = next((m for m in book_list.books if m.book_id == book_id), None)
        raise_for_status(
            condition=member is None,
            exception=ResourceNotFound,
            detail="Book not found in this list",
        )

        expected_version = book_list.version
        remaining_ids = [m.book_id for m in book_list.books if m is not member]
        metadata = await self._metadata_for(db, remaining_ids)
        book_list.books.remove(member)

        book_list = await self.book_list_repository.save_membership(
            db=db, book_list=book_list, expected_version=expected_version, metadata=metadata
        )
        self._logger.info(f"Book {book_id} removed from list {list_id}")
        return book_list

    async def reorder_books(
        self, db: AsyncSession, *, list_id: int, user_id: int, reorder_in: ReorderRequest
    ) -> Tuple[BookList, List[int]]:
        """
        Applies the requested order values to matching members. Ids that are
        not in the list are skipped and returned alongside the list.
        """
        book_list = await self._get_owned_list(db, list_id=list_id, user_id=user_id, action="modify")

        new_orders = {item.book_id: item.order for item in reorder_in.book_orders}
        member_ids = {member.book_id for member in book_list.books}
        skipped = [book_id for book_id in new_orders if book_id not in member_ids]

        expected_version = book_list.version
        for member in book_list.books:
            if member.book_id in new_orders:
                member.order = new_orders[member.book_id]

        book_list = await self.book_list_repository.save_membership(
            db=db, book_list=book_list, expected_version=expected_version
        )
        if skipped:
            self._logger.info(f"Reorder of list {list_id} skipped non-members {skipped}")
        return book_list, skipped

    async def toggle_like(
        self, db: AsyncSession, *, list_id: int, user_id: int, action: str
    ) -> LikeResponse:
        raise_for_status(
            condition=action not in LIKE_ACTIONS,
            exception=ValidationError,
            detail='Action must be "like" or "unlike"',
        )
        book_list = await self._get_list(db, list_id=list_id)
        self._check_read_access(book_list, user_id)
        raise_for_status(
            condition=book_list.is_owned_by(user_id),
            exception=ValidationError,
            detail="You cannot like your own list",
        )

        likes = await self.book_list_repository.change_likes(
            db=db, list_id=list_id, delta=LIKE_ACTIONS[action]
        )
        return LikeResponse(message=f"List {action}d successfully", likes=likes)


list_service = ListService()
