"""
Authentication service module.

Handles sign-up, sign-in and token refresh.
"""
import logging

from sqlmodel.ext.asyncio.session import AsyncSession

from bookstop.core.exceptions import InactiveUser, InvalidCredentials, ResourceAlreadyExists
from bookstop.core.security import password_manager, token_manager
from bookstop.crud.user_crud import user_repository
from bookstop.models.user_model import User
from bookstop.schemas.auth_schema import AuthResponse, SignInRequest, TokenResponse
from bookstop.schemas.user_schema import UserCreate, UserResponse
from bookstop.services.rate_limit_service import rate_limit_service

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self):
        self.user_repository = user_repository
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def _auth_response(self, user: User, message: str) -> AuthResponse:
        return AuthResponse(
            message=message,
            user=UserResponse.model_validate(user),
            token=token_manager.create_access_token(subject=user.id),
        )

    async def sign_up(self, db: AsyncSession, *, user_in: UserCreate) -> AuthResponse:
        """
        Registers a new account and signs it in.

        Raises:
            ResourceAlreadyExists: If the username and/or email is taken.
        """
        email_taken = await self.user_repository.get_by_email(db, email=user_in.email)
        username_taken = await self.user_repository.get_by_username(
            db, username=user_in.username
        )
        if email_taken and username_taken:
            raise ResourceAlreadyExists("Username and email already in use")
        if email_taken:
            raise ResourceAlreadyExists("Email already in use")
        if username_taken:
            raise ResourceAlreadyExists("Username already in use")

        user = User(
            **user_in.model_dump(exclude={"password"}),
            hashed_password=password_manager.hash_password(user_in.password),
        )
        user = await self.user_repository.create(db=db, obj_in=user)

        self._logger.info(f"New user registered: {user.id}", extra={"username": user.username})
        return self._auth_response(user, "User created successfully")

    async def sign_in(
        self, db: AsyncSession, *, credentials: SignInRequest, client_ip: str
    ) -> AuthResponse:
        """
        Verifies email and password and issues an access token.

        Raises:
            InvalidCredentials: Wrong email or password, or too many failures from this IP.
            InactiveUser: If the account is deactivated.
        """
        if await rate_limit_service.is_auth_rate_limited(client_ip):
            raise InvalidCredentials("Too many failed sign-in attempts. Please try again later.")

        user = await self.user_repository.get_by_email(db, email=credentials.email)

        # Same error for unknown email and wrong password
        password_is_valid = user is not None and password_manager.verify_password(
            credentials.password, user.hashed_password
        )
        if not password_is_valid:
            await rate_limit_service.record_failed_auth_attempt(client_ip)
            raise InvalidCredentials()

        if not user.is_active:
            raise InactiveUser()

        await rate_limit_service.clear_failed_auth_attempts(client_ip)

        if password_manager.needs_rehash(user.hashed_password):
            user = await self.user_repository.update(
                db=db,
                user=user,
                fields_to_update={
                    "hashed_password": password_manager.hash_password(credentials.password)
                },
            )
            self._logger.info(f"Password re-hashed for user {user.id}")

        self._logger.info(f"User {user.id} signed in")
        return self._auth_response(user, "Signed in successfully")

    def refresh(self, *, current_user: User) -> TokenResponse:
        """Issues a fresh token for an already-authenticated user."""
        return TokenResponse(token=token_manager.create_access_token(subject=current_user.id))


auth_service = AuthService()
