"""Authentication service — login, per-request token checks, logout, reset."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from labgate.audit.service import AuditService, RequestMeta
from labgate.auth.authorizer import AuthenticatedIdentity
from labgate.auth.lockout import LockoutPolicy
from labgate.auth.passwords import generate_temporary_password, verify_password
from labgate.auth.tokens import TokenCodec
from labgate.common.config import LabgateSettings
from labgate.common.database import DatabaseManager
from labgate.common.exceptions import (
    AccountLocked,
    InactiveAccount,
    InvalidCredentials,
    InvalidToken,
    SubjectNotFound,
    Unauthenticated,
)
from labgate.common.models import utcnow
from labgate.notifications.email import EmailSender
from labgate.users.models import UserModel
from labgate.users.service import UserService, lock_state_of

logger = logging.getLogger(__name__)


def identity_of(user: UserModel) -> AuthenticatedIdentity:
    return AuthenticatedIdentity(id=user.id, email=user.email, name=user.name, role=user.role)


@dataclass(frozen=True)
class LoginResult:
    token: str
    identity: AuthenticatedIdentity


class AuthService:
    """Orchestrates credentials, lockout, tokens, and subject liveness."""

    def __init__(
        self,
        settings: LabgateSettings,
        db: DatabaseManager,
        user_service: UserService,
        audit_service: AuditService,
        codec: TokenCodec | None = None,
        policy: LockoutPolicy | None = None,
        email_sender: EmailSender | None = None,
    ):
        self.settings = settings
        self.db = db
        self.users = user_service
        self.audit = audit_service
        self.codec = codec or TokenCodec(settings.secret_key, ttl=settings.token_ttl)
        self.policy = policy or LockoutPolicy(
            threshold=settings.failure_threshold,
            duration=settings.lockout_duration,
        )
        self.email_sender = email_sender or EmailSender.from_settings(settings)

    # ── Per-request ──

    async def authenticate(
        self, raw_token: Optional[str], now: Optional[datetime] = None,
    ) -> AuthenticatedIdentity:
        """Resolve a bearer token to a live identity.

        The subject is re-read on every call so that deactivating a user
        invalidates all of their outstanding tokens immediately.
        """
        if not raw_token:
            raise Unauthenticated()

        verified = self.codec.verify(raw_token, now=now)
        user_id = verified.claims.get("id")
        if not isinstance(user_id, str) or not user_id:
            raise InvalidToken()

        async with self.db.get_session() as session:
            user = await self.users.find_by_id(session, user_id)
            if user is None or not user.is_active:
                raise SubjectNotFound()
            return identity_of(user)

    # ── Login ──

    async def login(
        self,
        email: str,
        password: str,
        meta: RequestMeta | None = None,
        now: Optional[datetime] = None,
    ) -> LoginResult:
        now = now or utcnow()
        meta = meta or RequestMeta()

        async with self.db.get_session() as session:
            user = await self.users.find_by_email(session, email)
            if user is None:
                logger.warning("Login rejected", extra={"reason": "unknown_email"})
                raise InvalidCredentials()

            # Lock check precedes password comparison
            state = lock_state_of(user)
            if self.policy.is_locked(state, now):
                logger.warning(
                    "Login rejected", extra={"reason": "locked", "user_id": user.id},
                )
                raise AccountLocked()

            if not verify_password(password, user.password_hash):
                failed = self.policy.record_failure(state, now)
                await self.users.update_login_state(session, user, failed)
                # Persist the counter before the error unwinds the session
                await session.commit()
                logger.warning(
                    "Login rejected (attempt %d)", failed.attempts,
                    extra={"reason": "bad_password", "user_id": user.id},
                )
                raise InvalidCredentials()

            if not user.is_active:
                logger.warning(
                    "Login rejected", extra={"reason": "inactive", "user_id": user.id},
                )
                raise InactiveAccount()

            await self.users.update_login_state(
                session, user, self.policy.reset(), last_login=now,
            )
            identity = identity_of(user)

        token = self.codec.issue(
            {"id": identity.id, "email": identity.email, "role": identity.role},
            now=now,
        )
        await self.audit.record_best_effort(
            self.db, identity.id, "LOGIN", "users",
            record_id=identity.id,
            ip_address=meta.ip_address, user_agent=meta.user_agent,
        )
        logger.info("Login succeeded", extra={"user_id": identity.id})
        return LoginResult(token=token, identity=identity)

    async def logout(
        self, identity: AuthenticatedIdentity, meta: RequestMeta | None = None,
    ) -> None:
        """Record the logout. The token itself stays valid until it expires."""
        meta = meta or RequestMeta()
        await self.audit.record_best_effort(
            self.db, identity.id, "LOGOUT", "users",
            record_id=identity.id,
            ip_address=meta.ip_address, user_agent=meta.user_agent,
        )

    # ── Self-service password reset ──

    async def request_password_reset(
        self, email: str, meta: RequestMeta | None = None,
    ) -> None:
        """Email a new password to ``email`` if such a user exists.

        Callers must answer identically whether or not the user exists. The
        new password is only stored once the email has gone out.
        """
        meta = meta or RequestMeta()
        async with self.db.get_session() as session:
            user = await self.users.find_by_email(session, email)
            if user is None:
                logger.info("Password reset requested for unknown email")
                return

            new_password = generate_temporary_password(self.settings.temporary_password_length)
            delivered = await self.email_sender.send_password_reset(user.email, new_password)
            if not delivered:
                # Same outcome as an unknown email; the old password stays
                logger.error("Password reset email not delivered", extra={"user_id": user.id})
                return
            await self.users.set_password(session, user, new_password)
            user_id = user.id

        await self.audit.record_best_effort(
            self.db, user_id, "PASSWORD_RESET", "users",
            record_id=user_id,
            ip_address=meta.ip_address, user_agent=meta.user_agent,
        )
