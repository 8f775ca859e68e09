"""Audit log API router (read-only)."""

from fastapi import APIRouter, Depends, Query

from labgate.audit.schemas import (
    AuditEntryResponse,
    AuditLogVerification,
    RecentActivityResponse,
)
from labgate.auth.authorizer import Role
from labgate.common.security import get_current_identity, require_roles

router = APIRouter(prefix="/audit-logs")


def _get_service():
    from labgate.deps import get_audit_service
    return get_audit_service()


def _get_db():
    from labgate.deps import get_db
    return get_db()


@router.get("", response_model=list[AuditEntryResponse])
async def list_audit_entries(
    user_id: str | None = Query(None),
    action: str | None = Query(None),
    table_name: str | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    _=Depends(require_roles(Role.ADMINISTRATOR)),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        rows = await svc.get_entries(
            session, user_id=user_id, action=action, table_name=table_name,
            limit=limit, offset=offset,
        )
        return [
            AuditEntryResponse(
                id=e.id,
                user_id=e.user_id,
                user_name=user_name,
                action=e.action,
                table_name=e.table_name,
                record_id=e.record_id,
                old_values=e.old_values,
                new_values=e.new_values,
                ip_address=e.ip_address,
                user_agent=e.user_agent,
                entry_hash=e.entry_hash,
                signature=e.signature,
                created_at=e.created_at,
            )
            for e, user_name in rows
        ]


@router.get("/recent", response_model=list[RecentActivityResponse])
async def recent_activity(
    limit: int = Query(10, ge=1, le=50),
    _=Depends(get_current_identity),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        rows = await svc.recent_activity(session, limit=limit)
        return [
            RecentActivityResponse(
                action=e.action,
                table_name=e.table_name,
                user_name=user_name,
                created_at=e.created_at,
            )
            for e, user_name in rows
        ]


@router.get("/verify", response_model=AuditLogVerification)
async def verify_audit_log(_=Depends(require_roles(Role.ADMINISTRATOR))):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        result = await svc.verify_log(session)
        return AuditLogVerification(**result)
