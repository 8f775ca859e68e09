"""Dependency injection singletons for Labgate."""

from labgate.common.config import get_settings
from labgate.common.database import DatabaseManager
from labgate.audit.service import AuditService
from labgate.auth.service import AuthService
from labgate.notifications.email import EmailSender
from labgate.users.service import UserService

_db: DatabaseManager | None = None
_users: UserService | None = None
_audit: AuditService | None = None
_auth: AuthService | None = None
_email: EmailSender | None = None


def get_db() -> DatabaseManager:
    global _db
    if _db is None:
        _db = DatabaseManager(get_settings())
    return _db


def get_user_service() -> UserService:
    global _users
    if _users is None:
        _users = UserService(get_settings())
    return _users


def get_audit_service() -> AuditService:
    global _audit
    if _audit is None:
        _audit = AuditService(get_settings())
    return _audit


def get_email_sender() -> EmailSender:
    global _email
    if _email is None:
        _email = EmailSender.from_settings(get_settings())
    return _email


def get_auth_service() -> AuthService:
    global _auth
    if _auth is None:
        _auth = AuthService(
            get_settings(),
            get_db(),
            get_user_service(),
            get_audit_service(),
            email_sender=get_email_sender(),
        )
    return _auth


def reset_singletons() -> None:
    """Reset all singletons (for testing)."""
    global _db, _users, _audit, _auth, _email
    _db = None
    _users = None
    _audit = None
    _auth = None
    _email = None
