"""Audit service — record, query, and verify the signed audit log."""

import hashlib
import hmac as hmac_mod
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from labgate.audit.models import AuditEntryModel
from labgate.common.config import LabgateSettings
from labgate.common.database import DatabaseManager
from labgate.common.models import as_utc, generate_uuid, utcnow
from labgate.users.models import UserModel

logger = logging.getLogger(__name__)

MAX_USER_AGENT = 512


@dataclass(frozen=True)
class RequestMeta:
    """Requester network details captured on every audit entry."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


def serialize_snapshot(value: Any) -> Optional[str]:
    """Opaque serialization of a before/after payload. Strings pass through."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, default=str, ensure_ascii=False)


class AuditService:
    """Write-once audit log. Each entry is hashed and HMAC-signed on write."""

    def __init__(self, settings: LabgateSettings):
        self.settings = settings

    # ── Write ──

    async def record(
        self,
        session: AsyncSession,
        actor_id: str | None,
        action: str,
        table_name: str,
        record_id: str | None = None,
        before: Any = None,
        after: Any = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditEntryModel:
        """Append one entry inside the caller's session."""
        fields = {
            "id": generate_uuid(),
            "user_id": actor_id,
            "action": action,
            "table_name": table_name,
            "record_id": record_id,
            "old_values": serialize_snapshot(before),
            "new_values": serialize_snapshot(after),
            "ip_address": ip_address,
            "user_agent": user_agent[:MAX_USER_AGENT] if user_agent else user_agent,
        }
        created_at = utcnow()
        entry_hash = self._compute_entry_hash(fields, created_at)

        entry = AuditEntryModel(
            **fields,
            created_at=created_at,
            entry_hash=entry_hash,
            signature=self._sign(entry_hash),
        )
        session.add(entry)
        await session.flush()
        return entry

    async def record_best_effort(
        self,
        db: DatabaseManager,
        actor_id: str | None,
        action: str,
        table_name: str,
        record_id: str | None = None,
        before: Any = None,
        after: Any = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditEntryModel | None:
        """Append an entry in its own transaction after the business write.

        A failure here is logged and swallowed: the mutation that triggered it
        has already committed and is not rolled back.
        """
        try:
            async with db.get_session() as session:
                return await self.record(
                    session, actor_id, action, table_name,
                    record_id=record_id, before=before, after=after,
                    ip_address=ip_address, user_agent=user_agent,
                )
        except SQLAlchemyError:
            logger.exception(
                "Failed to write audit entry %s on %s", action, table_name,
                extra={
                    "user_id": actor_id,
                    "action": action,
                    "table_name": table_name,
                    "record_id": record_id,
                },
            )
            return None

    # ── Read ──

    async def get_entries(
        self,
        session: AsyncSession,
        user_id: str | None = None,
        action: str | None = None,
        table_name: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[tuple[AuditEntryModel, str | None]]:
        """Paginated entries, newest first, paired with the actor's name."""
        query = (
            select(AuditEntryModel, UserModel.name)
            .outerjoin(UserModel, AuditEntryModel.user_id == UserModel.id)
        )
        if user_id:
            query = query.where(AuditEntryModel.user_id == user_id)
        if action:
            query = query.where(AuditEntryModel.action == action)
        if table_name:
            query = query.where(AuditEntryModel.table_name == table_name)
        query = (
            query.order_by(AuditEntryModel.created_at.desc(), AuditEntryModel.seq.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await session.execute(query)
        return [(entry, name) for entry, name in result.all()]

    async def recent_activity(
        self, session: AsyncSession, limit: int = 10,
    ) -> list[tuple[AuditEntryModel, str | None]]:
        return await self.get_entries(session, limit=limit)

    # ── Verify ──

    async def verify_log(self, session: AsyncSession) -> dict[str, Any]:
        """Walk the log oldest→newest, recompute hashes and check signatures."""
        result = await session.execute(
            select(AuditEntryModel)
            .order_by(AuditEntryModel.created_at.asc(), AuditEntryModel.seq.asc())
        )
        entries = list(result.scalars().all())

        for checked, entry in enumerate(entries):
            expected_hash = self._compute_entry_hash(
                {
                    "id": entry.id,
                    "user_id": entry.user_id,
                    "action": entry.action,
                    "table_name": entry.table_name,
                    "record_id": entry.record_id,
                    "old_values": entry.old_values,
                    "new_values": entry.new_values,
                    "ip_address": entry.ip_address,
                    "user_agent": entry.user_agent,
                },
                entry.created_at,
            )
            if not hmac_mod.compare_digest(entry.entry_hash, expected_hash):
                return {"valid": False, "entries_checked": checked, "break_at": entry.id}

            # Keyring lookup supports rotated audit keys
            if not self._verify_signature(entry.entry_hash, entry.signature):
                return {"valid": False, "entries_checked": checked, "break_at": entry.id}

        return {"valid": True, "entries_checked": len(entries), "break_at": None}

    # ── Internal helpers ──

    @staticmethod
    def _compute_entry_hash(fields: dict[str, Any], created_at) -> str:
        """SHA-256 of canonical JSON of the entry fields."""
        canonical = json.dumps(
            {**fields, "created_at": as_utc(created_at).isoformat()},
            sort_keys=True,
            separators=(",", ":"),
        )
        return hashlib.sha256(canonical.encode()).hexdigest()

    def _sign(self, entry_hash: str) -> str:
        """HMAC-SHA256 of entry_hash with the current audit key."""
        return hmac_mod.new(
            self.settings.current_audit_key.encode(),
            entry_hash.encode(),
            hashlib.sha256,
        ).hexdigest()

    def _verify_signature(self, entry_hash: str, signature: str) -> bool:
        for _version, key in self.settings.audit_keyring.items():
            expected = hmac_mod.new(
                key.encode(), entry_hash.encode(), hashlib.sha256,
            ).hexdigest()
            if hmac_mod.compare_digest(expected, signature):
                return True
        return False
