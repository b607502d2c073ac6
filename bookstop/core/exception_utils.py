import functools
import logging
from typing import Any, Callable, Optional, Type, Union

from sqlalchemy.exc import IntegrityError

from bookstop.core.exceptions import BookStopException, InternalServerError

logger = logging.getLogger(__name__)


def raise_for_status(
    condition: bool,
    exception: Type[BookStopException],
    detail: Optional[str] = None,
    **kwargs: Any,
) -> None:
    """Raises `exception` when `condition` is true."""
    if condition:
        raise exception(detail, **kwargs)


def handle_exceptions(
    default_exception: Union[Type[BookStopException], BookStopException] = InternalServerError,
    message: Optional[str] = None,
    integrity_exception: Optional[Type[BookStopException]] = None,
    integrity_message: Optional[str] = None,
) -> Callable:
    """
    Wraps an async repository method so that unexpected errors surface as
    domain exceptions.

    Domain exceptions raised inside the method are re-raised untouched. An
    `IntegrityError` becomes `integrity_exception(integrity_message)` when
    an exception class is given. If the wrapped call received a `db`
    session it is rolled back before re-raising.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except BookStopException:
                raise
            except Exception as exc:
                db = kwargs.get("db")
                if db is not None:
                    await db.rollback()

                if integrity_exception is not None and isinstance(exc, IntegrityError):
                    logger.info(
                        f"Integrity violation in {func.__qualname__}: {exc.orig}",
                    )
                    raise integrity_exception(integrity_message) from exc

                logger.error(
                    f"Unhandled error in {func.__qualname__}: {exc}", exc_info=True
                )
                if isinstance(default_exception, BookStopException):
                    raise default_exception from exc
                raise default_exception(message) from exc

        return wrapper

    return decorator
