"""Tests for auth.passwords — bcrypt hashing helpers."""

from labgate.auth.passwords import (
    generate_temporary_password,
    hash_password,
    verify_password,
)


class TestHashing:
    def test_hash_verifies(self):
        hashed = hash_password("s3cret!")
        assert hashed != "s3cret!"
        assert verify_password("s3cret!", hashed) is True

    def test_wrong_password(self):
        assert verify_password("nope", hash_password("s3cret!")) is False

    def test_salted(self):
        assert hash_password("same") != hash_password("same")

    def test_malformed_hash_is_mismatch(self):
        assert verify_password("anything", "not-a-bcrypt-hash") is False


class TestTemporaryPassword:
    def test_length(self):
        assert len(generate_temporary_password(12)) == 12

    def test_alphanumeric(self):
        assert generate_temporary_password(32).isalnum()

    def test_random(self):
        assert generate_temporary_password() != generate_temporary_password()
