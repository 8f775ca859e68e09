"""Shared Pydantic schemas for Labgate."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    service: str = "labgate"


class ErrorResponse(BaseModel):
    error: str
    code: str


class MessageResponse(BaseModel):
    message: str
