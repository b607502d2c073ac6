import logging

from fastapi import APIRouter, Depends, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession

from bookstop.core.config import settings
from bookstop.core.middleware import get_client_ip
from bookstop.db.session import get_session
from bookstop.models.user_model import User
from bookstop.schemas.auth_schema import AuthResponse, SignInRequest, TokenResponse
from bookstop.schemas.user_schema import UserCreate
from bookstop.services.auth_service import auth_service
from bookstop.utils.deps import get_current_user, rate_limit_api, rate_limit_auth

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"], prefix=f"{settings.API_PREFIX}/auth")


@router.post(
    "/signup",
    status_code=status.HTTP_201_CREATED,
    response_model=AuthResponse,
    summary="Register a new account",
    description="Creates the account and returns it together with an access token",
    dependencies=[Depends(rate_limit_auth)],
)
async def sign_up(
    *,
    db: AsyncSession = Depends(get_session),
    user_in: UserCreate,
):
    return await auth_service.sign_up(db=db, user_in=user_in)


@router.post(
    "/signin",
    status_code=status.HTTP_200_OK,
    response_model=AuthResponse,
    summary="Sign in",
    description="Exchanges email and password for an access token",
    dependencies=[Depends(rate_limit_auth)],
)
async def sign_in(
    *,
    request: Request,
    db: AsyncSession = Depends(get_session),
    credentials: SignInRequest,
):
    return await auth_service.sign_in(
        db=db, credentials=credentials, client_ip=get_client_ip(request)
    )


@router.post(
    "/refresh",
    status_code=status.HTTP_200_OK,
    response_model=TokenResponse,
    summary="Refresh the access token",
    dependencies=[Depends(rate_limit_api)],
)
async def refresh_token(*, current_user: User = Depends(get_current_user)):
    return auth_service.refresh(current_user=current_user)
