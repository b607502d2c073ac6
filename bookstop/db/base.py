# Importing the models registers their tables on SQLModel.metadata.
from sqlmodel import SQLModel  # noqa: F401

from bookstop.models.user_model import User  # noqa: F401
from bookstop.models.book_model import Book  # noqa: F401
from bookstop.models.user_book_model import UserBook  # noqa: F401
from bookstop.models.review_model import Review, ReviewEdit  # noqa: F401
from bookstop.models.list_model import BookList, ListBook  # noqa: F401
