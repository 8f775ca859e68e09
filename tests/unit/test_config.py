"""Tests for LabgateSettings — keyring parsing and production guard."""

from datetime import timedelta

import pytest

from labgate.common.config import LabgateSettings


class TestKeyring:
    def test_scalar_key_is_version_zero(self):
        s = LabgateSettings(audit_hmac_key="k0", audit_hmac_keys="")
        assert s.audit_keyring == {0: "k0"}
        assert s.current_audit_key == "k0"

    def test_json_keyring_uses_highest_version(self):
        s = LabgateSettings(audit_hmac_keys='{"0": "old", "2": "newest", "1": "mid"}')
        assert s.audit_keyring == {0: "old", 1: "mid", 2: "newest"}
        assert s.current_audit_key == "newest"

    def test_bad_json_raises(self):
        s = LabgateSettings(audit_hmac_keys="not-json")
        with pytest.raises(ValueError, match="LABGATE_AUDIT_HMAC_KEYS"):
            s.audit_keyring


class TestDurations:
    def test_defaults(self):
        s = LabgateSettings()
        assert s.failure_threshold == 3
        assert s.lockout_duration == timedelta(minutes=15)
        assert s.token_ttl == timedelta(hours=24)

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("LABGATE_LOCKOUT_MINUTES", "30")
        assert LabgateSettings().lockout_duration == timedelta(minutes=30)


class TestProductionGuard:
    def test_production_rejects_default_keys(self):
        s = LabgateSettings(
            environment="production",
            secret_key="insecure-dev-key-change-me",
            audit_hmac_key="insecure-audit-key-change-me",
            audit_hmac_keys="",
        )
        with pytest.raises(RuntimeError, match="LABGATE_SECRET_KEY"):
            s.validate_for_production()

    def test_production_accepts_real_keys(self):
        s = LabgateSettings(
            environment="production",
            secret_key="a-real-secret",
            audit_hmac_key="a-real-audit-key",
        )
        s.validate_for_production()

    def test_keyring_replaces_scalar_audit_key(self):
        s = LabgateSettings(
            environment="production",
            secret_key="a-real-secret",
            audit_hmac_key="insecure-audit-key-change-me",
            audit_hmac_keys='{"0": "a-real-audit-key"}',
        )
        s.validate_for_production()

    def test_development_only_warns(self):
        s = LabgateSettings(
            environment="development",
            secret_key="insecure-dev-key-change-me",
            audit_hmac_key="insecure-audit-key-change-me",
        )
        with pytest.warns(UserWarning):
            s.validate_for_production()
