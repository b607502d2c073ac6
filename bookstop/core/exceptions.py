from typing import Any, Optional


class BookStopException(Exception):
    """Base class for every error the API turns into an HTTP response."""

    status_code: int = 500
    default_detail: str = "An unexpected error occurred."

    def __init__(
        self,
        detail: Optional[str] = None,
        *,
        resource_type: Optional[str] = None,
        resource_id: Optional[Any] = None,
        **context: Any,
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.context = context
        self.detail = detail or self._build_detail()
        super().__init__(self.detail)

    def _build_detail(self) -> str:
        return self.default_detail

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(status_code={self.status_code}, detail={self.detail!r})"


# --- 400 ---
class ValidationError(BookStopException):
    status_code = 400
    default_detail = "Invalid input."


# --- 401 ---
class NotAuthenticated(BookStopException):
    status_code = 401
    default_detail = "Authentication required."


class InvalidToken(BookStopException):
    status_code = 401
    default_detail = "Invalid token."


class TokenExpired(BookStopException):
    status_code = 401
    default_detail = "Token has expired."


class InvalidCredentials(BookStopException):
    status_code = 401
    default_detail = "Invalid credentials"


# --- 403 ---
class NotAuthorized(BookStopException):
    status_code = 403
    default_detail = "You are not allowed to perform this action."


class InactiveUser(BookStopException):
    status_code = 403
    default_detail = "This account is inactive."


# --- 404 ---
class ResourceNotFound(BookStopException):
    status_code = 404
    default_detail = "Resource not found."

    def _build_detail(self) -> str:
        if self.resource_type and self.resource_id is not None:
            return f"{self.resource_type} with id {self.resource_id} not found"
        if self.resource_type:
            return f"{self.resource_type} not found"
        return self.default_detail


# --- 409 ---
class ResourceAlreadyExists(BookStopException):
    status_code = 409
    default_detail = "Resource already exists."

    def _build_detail(self) -> str:
        if self.resource_type:
            return f"{self.resource_type} already exists"
        return self.default_detail


class ConflictError(BookStopException):
    status_code = 409
    default_detail = "The request conflicts with the current state of the resource."


# --- 429 ---
class RateLimitExceeded(BookStopException):
    status_code = 429
    default_detail = "Too many requests. Please try again later."


# --- 5xx ---
class InternalServerError(BookStopException):
    status_code = 500
    default_detail = "Internal server error"


class ExternalServiceError(BookStopException):
    status_code = 502
    default_detail = "An upstream service failed to respond."
