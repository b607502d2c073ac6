from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field, Column, String, DateTime

from bookstop.utils.datetime_utils import utcnow


class UserBase(SQLModel):
    username: str = Field(
        min_length=3,
        max_length=30,
        description="User's unique username",
        schema_extra={"example": "jane_doe"},
    )
    email: str = Field(
        max_length=200,
        description="User's email address",
        schema_extra={"example": "jane@example.com"},
    )
    display_name: str = Field(
        min_length=1,
        max_length=100,
        description="Name shown next to reviews and lists",
        schema_extra={"example": "Jane Doe"},
    )
    avatar: Optional[str] = Field(default=None, max_length=500)
    bio: str = Field(default="", max_length=500)
    is_active: bool = Field(default=True, description="Whether account is active")


class User(UserBase, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(
        sa_column=Column(String(200), unique=True, nullable=False, index=True)
    )
    username: str = Field(
        sa_column=Column(String(30), unique=True, nullable=False, index=True)
    )
    hashed_password: str = Field(max_length=255, exclude=True)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, onupdate=utcnow),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
