"""Signed, time-limited bearer tokens.

A token is a URL-safe, HMAC-signed envelope around a claims dict plus its
issue and expiry instants. Nothing is stored server-side: verification is a
pure function of the token string, the signing secret and the clock, so
rotating the secret invalidates every outstanding token at once.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from itsdangerous import BadData, URLSafeSerializer

from labgate.common.exceptions import InvalidToken

TOKEN_SALT = "labgate-access-token"
DEFAULT_TTL = timedelta(hours=24)


@dataclass(frozen=True)
class VerifiedToken:
    """Claims recovered from a token that passed signature and expiry checks."""

    claims: dict[str, Any]
    issued_at: datetime
    expires_at: datetime


class TokenCodec:
    """Issue and verify bearer tokens with a symmetric secret."""

    def __init__(self, secret_key: str, ttl: timedelta = DEFAULT_TTL):
        if not secret_key:
            raise ValueError("Token signing secret must not be empty")
        self.ttl = ttl
        self._serializer = URLSafeSerializer(secret_key, salt=TOKEN_SALT)

    def issue(
        self,
        claims: dict[str, Any],
        ttl: Optional[timedelta] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """Sign ``claims`` into a token valid for ``ttl`` (default: codec TTL)."""
        now = now or datetime.now(timezone.utc)
        expires_at = now + (ttl if ttl is not None else self.ttl)
        envelope = {
            "claims": claims,
            "iat": now.timestamp(),
            "exp": expires_at.timestamp(),
        }
        return self._serializer.dumps(envelope)

    def verify(self, token: str, now: Optional[datetime] = None) -> VerifiedToken:
        """Return the token's claims, or raise InvalidToken.

        No I/O happens here; liveness of the subject is the caller's concern.
        """
        if not token:
            raise InvalidToken()
        try:
            envelope = self._serializer.loads(token)
        except BadData as exc:
            raise InvalidToken() from exc

        try:
            claims = envelope["claims"]
            issued_at = datetime.fromtimestamp(envelope["iat"], tz=timezone.utc)
            expires_at = datetime.fromtimestamp(envelope["exp"], tz=timezone.utc)
        except (KeyError, TypeError, ValueError, OverflowError) as exc:
            raise InvalidToken() from exc
        if not isinstance(claims, dict):
            raise InvalidToken()

        now = now or datetime.now(timezone.utc)
        if now >= expires_at:
            raise InvalidToken("Token has expired")

        return VerifiedToken(claims=claims, issued_at=issued_at, expires_at=expires_at)
