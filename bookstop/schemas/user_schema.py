import re
from datetime import datetime
from typing import Optional, Annotated

from pydantic import BaseModel, Field, ConfigDict, field_validator

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def normalize_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please provide a valid email address")
    return value


def normalize_username(value: str) -> str:
    value = value.strip()
    if not USERNAME_PATTERN.match(value):
        raise ValueError(
            "Username may only contain letters, numbers, dots, dashes and underscores"
        )
    return value


Username = Annotated[str, Field(min_length=3, max_length=30, examples=["jane_doe"])]
DisplayName = Annotated[str, Field(min_length=1, max_length=100, examples=["Jane Doe"])]
Password = Annotated[str, Field(min_length=6, max_length=128)]


class UserCreate(BaseModel):
    username: Username
    email: str = Field(..., max_length=200, examples=["jane@example.com"])
    password: Password
    display_name: DisplayName
    avatar: Optional[str] = Field(None, max_length=500)
    bio: str = Field("", max_length=500)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str) -> str:
        return normalize_username(v)

    @field_validator("display_name", "bio")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()


class UserUpdate(BaseModel):
    """Profile update. Changing the username requires the current password."""

    username: Optional[Username] = None
    display_name: Optional[DisplayName] = None
    avatar: Optional[str] = Field(None, max_length=500)
    bio: Optional[str] = Field(None, max_length=500)
    current_password: Optional[str] = Field(None, description="Required to change username")

    @field_validator("username")
    @classmethod
    def check_username(cls, v: Optional[str]) -> Optional[str]:
        return normalize_username(v) if v is not None else v


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: Password


class AccountDelete(BaseModel):
    password: str = Field(..., min_length=1, description="Current password, for confirmation")


class UserSummary(BaseModel):
    """Compact author info embedded in reviews and lists."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    display_name: str
    avatar: Optional[str] = None


class UserResponse(UserSummary):
    email: str
    bio: str = ""
    created_at: datetime


class UserPublicResponse(UserSummary):
    bio: str = ""
    created_at: datetime


class UserEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    user: UserPublicResponse
