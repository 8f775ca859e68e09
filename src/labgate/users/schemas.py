"""Pydantic schemas for user management endpoints."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field

from labgate.auth.authorizer import Role


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    role: Role
    # When omitted a temporary password is generated and emailed.
    password: Optional[str] = Field(default=None, max_length=72)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[Role] = None
    status: Optional[Literal["active", "inactive"]] = None


class PasswordChange(BaseModel):
    current_password: Optional[str] = Field(default=None, max_length=128)
    new_password: str = Field(..., min_length=1, max_length=72)


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    role: str
    status: str
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserCreateResponse(UserResponse):
    """Whether the welcome email with the temporary password went out."""
    email_sent: bool = False
