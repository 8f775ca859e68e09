"""User service — credential store lookups, login-state writes, admin CRUD."""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from labgate.auth.authorizer import Role
from labgate.auth.lockout import LockState
from labgate.auth.passwords import hash_password, verify_password
from labgate.common.config import LabgateSettings
from labgate.common.exceptions import (
    EmailAlreadyRegistered,
    InvalidPasswordError,
    UserNotFound,
)
from labgate.common.models import as_utc
from labgate.users.models import STATUS_ACTIVE, STATUS_INACTIVE, USER_STATUSES, UserModel


def normalize_email(email: str) -> str:
    return email.strip().lower()


def lock_state_of(user: UserModel) -> LockState:
    return LockState(
        attempts=user.failed_login_attempts or 0,
        locked_until=as_utc(user.locked_until),
    )


class UserService:
    """Single-row reads and writes against the users table."""

    def __init__(self, settings: LabgateSettings):
        self.settings = settings

    # ── Lookups ──

    async def find_by_email(
        self, session: AsyncSession, email: str,
    ) -> UserModel | None:
        result = await session.execute(
            select(UserModel).where(UserModel.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def find_by_id(
        self, session: AsyncSession, user_id: str,
    ) -> UserModel | None:
        return await session.get(UserModel, user_id)

    async def get_or_raise(self, session: AsyncSession, user_id: str) -> UserModel:
        user = await self.find_by_id(session, user_id)
        if user is None:
            raise UserNotFound()
        return user

    async def list_users(
        self,
        session: AsyncSession,
        search: str | None = None,
        role: str | None = None,
        status: str | None = None,
    ) -> list[UserModel]:
        query = select(UserModel)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(UserModel.name.ilike(pattern), UserModel.email.ilike(pattern))
            )
        if role:
            query = query.where(UserModel.role == role)
        if status:
            query = query.where(UserModel.status == status)
        query = query.order_by(UserModel.created_at.desc())
        result = await session.execute(query)
        return list(result.scalars().all())

    # ── Login state ──

    async def update_login_state(
        self,
        session: AsyncSession,
        user: UserModel,
        state: LockState,
        last_login: Optional[datetime] = None,
    ) -> UserModel:
        user.failed_login_attempts = state.attempts
        user.locked_until = state.locked_until
        if last_login is not None:
            user.last_login = last_login
        await session.flush()
        return user

    # ── Administration ──

    async def create_user(
        self,
        session: AsyncSession,
        email: str,
        name: str,
        role: Role | str,
        password: str,
    ) -> UserModel:
        email = normalize_email(email)
        if await self.find_by_email(session, email) is not None:
            raise EmailAlreadyRegistered()
        self._check_password_length(password)

        user = UserModel(
            email=email,
            name=name,
            role=Role(role).value,
            status=STATUS_ACTIVE,
            password_hash=hash_password(password),
            failed_login_attempts=0,
        )
        session.add(user)
        await session.flush()
        return user

    async def update_user(
        self, session: AsyncSession, user_id: str, **updates: Any,
    ) -> tuple[UserModel, dict]:
        """Apply non-None updates. Returns (user, snapshot_before)."""
        user = await self.get_or_raise(session, user_id)
        before = user.snapshot()

        email = updates.get("email")
        if email is not None:
            email = normalize_email(email)
            if email != user.email:
                existing = await self.find_by_email(session, email)
                if existing is not None and existing.id != user.id:
                    raise EmailAlreadyRegistered()
                user.email = email
        if updates.get("name") is not None:
            user.name = updates["name"]
        if updates.get("role") is not None:
            user.role = Role(updates["role"]).value
        if updates.get("status") is not None:
            if updates["status"] not in USER_STATUSES:
                raise ValueError(f"Unknown status {updates['status']!r}")
            user.status = updates["status"]
        await session.flush()
        return user, before

    async def deactivate_user(
        self, session: AsyncSession, user_id: str,
    ) -> tuple[UserModel, dict]:
        """Soft-delete: users are never physically removed."""
        user = await self.get_or_raise(session, user_id)
        before = user.snapshot()
        user.status = STATUS_INACTIVE
        await session.flush()
        return user, before

    async def change_password(
        self,
        session: AsyncSession,
        user_id: str,
        new_password: str,
        current_password: str | None = None,
    ) -> UserModel:
        """Set a new password; when ``current_password`` is given it must match."""
        user = await self.get_or_raise(session, user_id)
        if current_password is not None and not verify_password(
            current_password, user.password_hash
        ):
            raise InvalidPasswordError("Current password is incorrect")
        self._check_password_length(new_password)
        user.password_hash = hash_password(new_password)
        await session.flush()
        return user

    async def set_password(
        self, session: AsyncSession, user: UserModel, new_password: str,
    ) -> UserModel:
        user.password_hash = hash_password(new_password)
        await session.flush()
        return user

    def _check_password_length(self, password: str) -> None:
        if len(password) < self.settings.min_password_length:
            raise InvalidPasswordError(
                f"Password must have at least {self.settings.min_password_length} characters"
            )
        # bcrypt only looks at the first 72 bytes
        if len(password.encode("utf-8")) > 72:
            raise InvalidPasswordError("Password must be at most 72 bytes")
