"""Request bodies for the auth and admin user endpoints."""

from typing import Optional

from pydantic import BaseModel, Field

from ..core.enums import Role, UserStatus


class RegisterRequest(BaseModel):
    email: str = Field(..., max_length=255)
    full_name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)
    phone: Optional[str] = Field(default=None, max_length=30)


class LoginRequest(BaseModel):
    email: str
    password: str


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


class CreateInstructorRequest(BaseModel):
    email: str = Field(..., max_length=255)
    full_name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)
    phone: Optional[str] = Field(default=None, max_length=30)


class UpdateUserRequest(BaseModel):
    full_name: Optional[str] = Field(default=None, max_length=255)
    role: Optional[Role] = None
    status: Optional[UserStatus] = None
    phone: Optional[str] = Field(default=None, max_length=30)


class UserListQuery(BaseModel):
    role: Optional[Role] = None
    status: Optional[UserStatus] = None
    search: Optional[str] = None
