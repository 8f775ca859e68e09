"""Labgate exception hierarchy.

Every error carries the HTTP status it surfaces as; the app-level handler
in ``labgate.app`` turns them into ``{"error", "code"}`` responses.
"""


class LabgateError(Exception):
    """Base exception for all Labgate errors."""

    status_code = 500

    def __init__(self, message: str = "", code: str = "LABGATE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


# ── Authentication / authorization ──

class AuthError(LabgateError):
    """Base for request authentication, login and authorization failures."""

    status_code = 401


class Unauthenticated(AuthError):
    """Raised when no bearer credential was presented."""

    def __init__(self, message: str = "Access token required"):
        super().__init__(message, code="UNAUTHENTICATED")


class InvalidToken(AuthError):
    """Raised when a token is malformed, expired, or badly signed."""

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message, code="INVALID_TOKEN")


class SubjectNotFound(AuthError):
    """Raised when a valid token names a user that is gone or inactive."""

    def __init__(self, message: str = "User not found or inactive"):
        super().__init__(message, code="SUBJECT_NOT_FOUND")


class InvalidCredentials(AuthError):
    """Wrong email or wrong password. The two are never distinguished."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message, code="INVALID_CREDENTIALS")


class AccountLocked(AuthError):
    """Raised while a login lockout is in force."""

    status_code = 423

    def __init__(self, message: str = "Account temporarily locked due to too many login attempts"):
        super().__init__(message, code="ACCOUNT_LOCKED")


class InactiveAccount(AuthError):
    """Raised when the password matched but the account is deactivated."""

    status_code = 403

    def __init__(self, message: str = "User account is inactive"):
        super().__init__(message, code="INACTIVE_ACCOUNT")


class Forbidden(AuthError):
    """Raised when an authenticated identity lacks a permitted role."""

    status_code = 403

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message, code="FORBIDDEN")


# ── User management ──

class UserNotFound(LabgateError):
    status_code = 404

    def __init__(self, message: str = "User not found"):
        super().__init__(message, code="NOT_FOUND")


class EmailAlreadyRegistered(LabgateError):
    status_code = 400

    def __init__(self, message: str = "A user with this email already exists"):
        super().__init__(message, code="EMAIL_TAKEN")


class InvalidPasswordError(LabgateError):
    """Raised for a wrong current password or a too-short new one."""

    status_code = 400

    def __init__(self, message: str = "Invalid password"):
        super().__init__(message, code="INVALID_PASSWORD")


class OperationNotAllowed(LabgateError):
    status_code = 400

    def __init__(self, message: str = "Operation not allowed"):
        super().__init__(message, code="NOT_ALLOWED")


# ── Collaborators ──

class NotificationError(LabgateError):
    """Raised when an outbound email could not be delivered."""

    def __init__(self, message: str = "Failed to send email"):
        super().__init__(message, code="NOTIFICATION_FAILED")
