import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from bookstop.core.config import settings
from bookstop.db.session import get_session
from bookstop.models.list_model import ListVisibility
from bookstop.models.user_model import User
from bookstop.schemas.common_schema import MessageResponse
from bookstop.schemas.list_schema import (
    AddBookRequest,
    LikeRequest,
    LikeResponse,
    ListCollectionResponse,
    ListCreate,
    ListEnvelope,
    ListResponse,
    ListUpdate,
    ReorderRequest,
    ReorderResponse,
)
from bookstop.services.list_service import list_service
from bookstop.utils.deps import (
    PaginationParams,
    get_current_user,
    get_current_user_optional,
    get_pagination_params,
    rate_limit_api,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Lists"], prefix=f"{settings.API_PREFIX}/list")


def _viewer_id(user: Optional[User]) -> Optional[int]:
    return user.id if user else None


# =====CREATE======
@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ListEnvelope,
    summary="Create a list",
    dependencies=[Depends(rate_limit_api)],
)
async def create_list(
    *,
    list_in: ListCreate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    book_list = await list_service.create_list(db=db, user_id=current_user.id, list_in=list_in)
    return ListEnvelope(
        message="List created successfully", list=ListResponse.model_validate(book_list)
    )


# =====READ======
@router.get(
    "",
    status_code=status.HTTP_200_OK,
    response_model=ListCollectionResponse,
    summary="Browse lists",
    description="Public lists plus, when signed in, your own",
    dependencies=[Depends(rate_limit_api)],
)
async def get_lists(
    *,
    db: AsyncSession = Depends(get_session),
    current_user: Optional[User] = Depends(get_current_user_optional),
    pagination: PaginationParams = Depends(get_pagination_params),
    user_id: Optional[int] = Query(None),
    visibility: Optional[ListVisibility] = Query(None),
    sort_by: str = Query("created_at", pattern="^(created_at|updated_at|likes|title|total_books)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
):
    return await list_service.get_lists(
        db=db,
        viewer_id=_viewer_id(current_user),
        user_id=user_id,
        visibility=visibility,
        page=pagination.page,
        limit=pagination.limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get(
    "/public",
    status_code=status.HTTP_200_OK,
    response_model=ListCollectionResponse,
    summary="Public lists",
    dependencies=[Depends(rate_limit_api)],
)
async def get_public_lists(
    *,
    db: AsyncSession = Depends(get_session),
    pagination: PaginationParams = Depends(get_pagination_params),
    sort_by: str = Query("created_at", pattern="^(created_at|updated_at|likes|title|total_books)$"),
):
    return await list_service.get_public_lists(
        db=db, page=pagination.page, limit=pagination.limit, sort_by=sort_by
    )


@router.get(
    "/search",
    status_code=status.HTTP_200_OK,
    response_model=ListCollectionResponse,
    summary="Search lists by title or description",
    dependencies=[Depends(rate_limit_api)],
)
async def search_lists(
    *,
    q: str = Query(..., description="Search text"),
    db: AsyncSession = Depends(get_session),
    current_user: Optional[User] = Depends(get_current_user_optional),
    pagination: PaginationParams = Depends(get_pagination_params),
):
    return await list_service.search_lists(
        db=db,
        q=q,
        viewer_id=_viewer_id(current_user),
        page=pagination.page,
        limit=pagination.limit,
    )


@router.get(
    "/user/{user_id}",
    status_code=status.HTTP_200_OK,
    response_model=ListCollectionResponse,
    summary="A user's lists",
    dependencies=[Depends(rate_limit_api)],
)
async def get_user_lists(
    *,
    user_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: Optional[User] = Depends(get_current_user_optional),
    pagination: PaginationParams = Depends(get_pagination_params),
    visibility: Optional[ListVisibility] = Query(None),
):
    return await list_service.get_user_lists(
        db=db,
        user_id=user_id,
        viewer_id=_viewer_id(current_user),
        visibility=visibility,
        page=pagination.page,
        limit=pagination.limit,
    )


@router.get(
    "/{list_id}",
    status_code=status.HTTP_200_OK,
    response_model=ListEnvelope,
    summary="Get a list",
    dependencies=[Depends(rate_limit_api)],
)
async def get_list(
    *,
    list_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    book_list = await list_service.get_list(
        db=db, list_id=list_id, viewer_id=_viewer_id(current_user)
    )
    return ListEnvelope(list=ListResponse.model_validate(book_list))


# =======UPDATE========
@router.put(
    "/{list_id}",
    status_code=status.HTTP_200_OK,
    response_model=ListEnvelope,
    summary="Update list details",
    dependencies=[Depends(rate_limit_api)],
)
async def update_list(
    *,
    list_id: int,
    list_in: ListUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    book_list = await list_service.update_list(
        db=db, list_id=list_id, user_id=current_user.id, list_in=list_in
    )
    return ListEnvelope(
        message="List updated successfully", list=ListResponse.model_validate(book_list)
    )


@router.post(
    "/{list_id}/books",
    status_code=status.HTTP_200_OK,
    response_model=ListEnvelope,
    summary="Add a book to a list",
    dependencies=[Depends(rate_limit_api)],
)
async def add_book_to_list(
    *,
    list_id: int,
    add_in: AddBookRequest,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    book_list = await list_service.add_book_to_list(
        db=db, list_id=list_id, user_id=current_user.id, add_in=add_in
    )
    return ListEnvelope(
        message="Book added to list successfully", list=ListResponse.model_validate(book_list)
    )


@router.delete(
    "/{list_id}/books/{book_id}",
    status_code=status.HTTP_200_OK,
    response_model=ListEnvelope,
    summary="Remove a book from a list",
    dependencies=[Depends(rate_limit_api)],
)
async def remove_book_from_list(
    *,
    list_id: int,
    book_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    book_list = await list_service.remove_book_from_list(
        db=db, list_id=list_id, user_id=current_user.id, book_id=book_id
    )
    return ListEnvelope(
        message="Book removed from list successfully",
        list=ListResponse.model_validate(book_list),
    )


@router.put(
    "/{list_id}/reorder",
    status_code=status.HTTP_200_OK,
    response_model=ReorderResponse,
    summary="Reorder a list's books",
    description="Ids that are not in the list are ignored and reported back",
    dependencies=[Depends(rate_limit_api)],
)
async def reorder_books(
    *,
    list_id: int,
    reorder_in: ReorderRequest,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    book_list, skipped = await list_service.reorder_books(
        db=db, list_id=list_id, user_id=current_user.id, reorder_in=reorder_in
    )
    return ReorderResponse(
        message="Books reordered successfully",
        list=ListResponse.model_validate(book_list),
        skipped_book_ids=skipped,
    )


@router.post(
    "/{list_id}/like",
    status_code=status.HTTP_200_OK,
    response_model=LikeResponse,
    summary="Like or unlike a list",
    dependencies=[Depends(rate_limit_api)],
)
async def like_list(
    *,
    list_id: int,
    like_in: LikeRequest,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return await list_service.toggle_like(
        db=db, list_id=list_id, user_id=current_user.id, action=like_in.action
    )


# =======DELETE========
@router.delete(
    "/{list_id}",
    status_code=status.HTTP_200_OK,
    response_model=MessageResponse,
    summary="Delete a list",
    dependencies=[Depends(rate_limit_api)],
)
async def delete_list(
    *,
    list_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    await list_service.delete_list(db=db, list_id=list_id, user_id=current_user.id)
    return MessageResponse(message="List deleted successfully")
