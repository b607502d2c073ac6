import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from bookstop.core.config import settings
from bookstop.core.exceptions import InternalServerError, InvalidToken, TokenExpired

logger = logging.getLogger(__name__)

if not settings.JWT_SECRET or len(settings.JWT_SECRET) < 32:
    raise ValueError("JWT_SECRET must be configured and be at least 32 characters long.")


# Sent on every response by SecurityHeadersMiddleware.
SECURITY_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
}


class PasswordManager:
    """Argon2 hashing for new passwords; bcrypt hashes are still accepted."""

    def __init__(self) -> None:
        self._context = CryptContext(schemes=["argon2", "bcrypt"], deprecated="auto")

    def hash_password(self, password: str) -> str:
        try:
            return self._context.hash(password)
        except Exception:
            logger.critical("Could not hash a user password", exc_info=True)
            raise InternalServerError(detail="Could not process password.")

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        # A stored hash passlib cannot identify is treated as a mismatch.
        try:
            return self._context.verify(plain_password, hashed_password)
        except (ValueError, TypeError):
            logger.warning("Stored password hash could not be verified")
            return False

    def needs_rehash(self, hashed_password: str) -> bool:
        return self._context.needs_update(hashed_password)


class TokenManager:
    """Signs and checks the session tokens handed out at sign-in."""

    def __init__(
        self,
        secret: str,
        algorithm: str,
        lifetime: timedelta,
        issuer: str,
        audience: str,
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._lifetime = lifetime
        self._issuer = issuer
        self._audience = audience

    def create_access_token(self, subject: Any, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        claims = {
            "sub": str(subject),
            "iat": issued_at,
            "exp": issued_at + self._lifetime,
            "iss": self._issuer,
            "aud": self._audience,
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify_token(self, token: str) -> Dict[str, Any]:
        """Return the claims of a valid token, or raise TokenExpired / InvalidToken."""
        if not token:
            raise InvalidToken("Token cannot be empty.")

        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpired() from None
        except JWTError as exc:
            raise InvalidToken(f"Token is invalid: {exc}") from exc

        if not claims.get("sub"):
            raise InvalidToken("Token has no subject.")
        return claims


password_manager = PasswordManager()
token_manager = TokenManager(
    secret=settings.JWT_SECRET,
    algorithm=settings.JWT_ALGORITHM,
    lifetime=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    issuer=settings.TOKEN_ISSUER,
    audience=settings.TOKEN_AUDIENCE,
)
