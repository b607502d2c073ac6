from typing import Optional

from pydantic import BaseModel, Field, field_validator

from bookstop.schemas.user_schema import UserResponse, normalize_email


class SignInRequest(BaseModel):
    email: str = Field(..., max_length=200, examples=["jane@example.com"])
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return normalize_email(v)


class AuthResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    user: UserResponse
    token: str


class TokenResponse(BaseModel):
    success: bool = True
    token: str
