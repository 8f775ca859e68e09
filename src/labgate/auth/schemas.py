"""Pydantic schemas for authentication endpoints."""

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class IdentityResponse(BaseModel):
    id: str
    email: str
    name: str
    role: str


class LoginResponse(BaseModel):
    token: str
    user: IdentityResponse


class VerifyResponse(BaseModel):
    user: IdentityResponse


class PasswordResetRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
