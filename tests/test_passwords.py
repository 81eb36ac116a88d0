"""
Tests for password hashing.
"""

import bcrypt
import pytest

from nodemanager.auth import PasswordHasher


# =============================================================================
# PBKDF2 Hashes
# =============================================================================


class TestPasswordHasher:
    def test_verify_own_hash(self, hasher):
        password_hash = hasher.hash("correct-horse-battery")

        assert hasher.verify("correct-horse-battery", password_hash)

    def test_wrong_password_rejected(self, hasher):
        password_hash = hasher.hash("correct-horse-battery")

        assert not hasher.verify("wrong-password", password_hash)

    def test_hash_is_salted(self, hasher):
        first = hasher.hash("same password")
        second = hasher.hash("same password")

        assert first != second
        assert hasher.verify("same password", first)
        assert hasher.verify("same password", second)

    def test_hash_never_contains_plaintext(self, hasher):
        password_hash = hasher.hash("correct-horse-battery")

        assert "correct-horse-battery" not in password_hash
        salt, digest = password_hash.split(":")
        assert len(salt) == 64
        assert len(digest) == 64

    def test_default_iterations(self):
        assert PasswordHasher().iterations == 100_000

    def test_iterations_are_part_of_the_contract(self, hasher):
        password_hash = hasher.hash("correct-horse-battery")

        assert not PasswordHasher(iterations=2_000).verify("correct-horse-battery", password_hash)

    @pytest.mark.parametrize("stored", ["", "no-separator", "a:b:c", "salt:"])
    def test_malformed_hash_returns_false(self, hasher, stored):
        assert hasher.verify("anything", stored) is False

    def test_special_characters(self, hasher):
        password = "p@ss:w0rd/with:colons and spaces ü"
        password_hash = hasher.hash(password)

        assert hasher.verify(password, password_hash)


# =============================================================================
# Legacy bcrypt Hashes
# =============================================================================


class TestLegacyBcrypt:
    def test_bcrypt_hash_verifies(self, hasher):
        stored = bcrypt.hashpw(b"correct-horse-battery", bcrypt.gensalt(rounds=4)).decode()

        assert hasher.verify("correct-horse-battery", stored)
        assert not hasher.verify("wrong-password", stored)

    def test_malformed_bcrypt_hash_returns_false(self, hasher):
        assert hasher.verify("anything", "$2b$04$not-a-real-hash") is False


# =============================================================================
# Async Wrappers
# =============================================================================


class TestAsync:
    @pytest.mark.asyncio
    async def test_hash_and_verify_async(self, hasher):
        password_hash = await hasher.hash_async("correct-horse-battery")

        assert await hasher.verify_async("correct-horse-battery", password_hash)
        assert not await hasher.verify_async("wrong-password", password_hash)
