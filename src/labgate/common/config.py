"""Labgate configuration via pydantic-settings."""

import json
import warnings
from datetime import timedelta
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_DEFAULTS = {
    "secret_key": "insecure-dev-key-change-me",
    "audit_hmac_key": "insecure-audit-key-change-me",
}


class LabgateSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LABGATE_")

    environment: str = "development"

    # Bearer token signing secret. Rotating it invalidates every issued token.
    secret_key: str = "insecure-dev-key-change-me"

    # Audit signing keyring — JSON dict mapping version (int) to key string.
    # e.g. '{"0": "old-key", "1": "new-key"}'
    # When set, audit_hmac_key is ignored.  When empty, audit_hmac_key is version 0.
    audit_hmac_key: str = "insecure-audit-key-change-me"
    audit_hmac_keys: str = ""

    # Database
    db_url: str = "sqlite+aiosqlite:///./data/labgate.db"

    # API
    api_title: str = "Labgate"
    api_version: str = "0.1.0"
    host: str = "0.0.0.0"
    port: int = 8080
    api_prefix: str = ""
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    log_level: str = "INFO"

    # Login lockout
    failure_threshold: int = 3
    lockout_minutes: int = 15

    # Tokens
    token_ttl_hours: int = 24

    # Passwords
    min_password_length: int = 6
    temporary_password_length: int = 10

    # Outbound email ("sendgrid", "resend" or empty for log-only)
    email_provider: str = ""
    email_api_key: str = ""
    email_from: str = "no-reply@labgate.local"
    email_from_name: str = "Labgate"

    @property
    def token_ttl(self) -> timedelta:
        return timedelta(hours=self.token_ttl_hours)

    @property
    def lockout_duration(self) -> timedelta:
        return timedelta(minutes=self.lockout_minutes)

    @property
    def audit_keyring(self) -> dict[int, str]:
        """Return the audit keyring as {version_int: key_str}.

        If audit_hmac_keys is set, parse it as JSON.
        Otherwise, fall back to scalar audit_hmac_key as version 0.
        """
        if self.audit_hmac_keys:
            try:
                raw = json.loads(self.audit_hmac_keys)
            except (json.JSONDecodeError, TypeError) as exc:
                raise ValueError(
                    f"LABGATE_AUDIT_HMAC_KEYS must be valid JSON (e.g. '{{\"0\": \"key\"}}'), "
                    f"got: {self.audit_hmac_keys!r}"
                ) from exc
            return {int(k): v for k, v in raw.items()}
        return {0: self.audit_hmac_key}

    @property
    def current_audit_key(self) -> str:
        """Return the audit key for the current (highest) version."""
        ring = self.audit_keyring
        return ring[max(ring.keys())]

    def validate_for_production(self) -> None:
        """Raise if insecure defaults are used in non-development environments."""
        insecure_fields = [
            field
            for field, default in _INSECURE_DEFAULTS.items()
            if getattr(self, field) == default
        ]
        if self.audit_hmac_keys and "audit_hmac_key" in insecure_fields:
            insecure_fields.remove("audit_hmac_key")

        if self.environment != "development" and insecure_fields:
            env_vars = ", ".join(f"LABGATE_{f.upper()}" for f in insecure_fields)
            raise RuntimeError(
                f"Insecure default values detected in '{self.environment}' environment. "
                f"Set these environment variables to secure values: {env_vars}. "
                "Generate secrets with: python -c \"import secrets; print(secrets.token_urlsafe(48))\""
            )

        if insecure_fields:
            warnings.warn(
                "Using insecure default keys — set LABGATE_SECRET_KEY and "
                "LABGATE_AUDIT_HMAC_KEY for production",
                UserWarning,
                stacklevel=2,
            )


@lru_cache
def get_settings() -> LabgateSettings:
    settings = LabgateSettings()
    settings.validate_for_production()
    return settings
