"""Pydantic schemas for audit log API responses."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class AuditEntryResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    action: str
    table_name: str
    record_id: Optional[str] = None
    old_values: Optional[str] = None
    new_values: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    entry_hash: str
    signature: str
    created_at: datetime


class RecentActivityResponse(BaseModel):
    action: str
    table_name: str
    user_name: Optional[str] = None
    created_at: datetime


class AuditLogVerification(BaseModel):
    valid: bool
    entries_checked: int
    break_at: Optional[str] = None
