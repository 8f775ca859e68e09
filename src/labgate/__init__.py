"""Labgate: access control and audit for the laboratory-management backend."""

from labgate.auth.authorizer import AuthenticatedIdentity, Decision, Role, authorize
from labgate.auth.lockout import LockoutPolicy, LockState
from labgate.auth.tokens import TokenCodec, VerifiedToken

__all__ = [
    "AuthenticatedIdentity",
    "Decision",
    "Role",
    "authorize",
    "LockoutPolicy",
    "LockState",
    "TokenCodec",
    "VerifiedToken",
]
__version__ = "0.1.0"
