# =============================================================================
# Password Hashing
# =============================================================================
#
# New hashes are PBKDF2-SHA256 in "salt:hash" format.
# Hashes written by earlier releases are bcrypt ("$2b$..."); they still
# verify so existing accounts keep working after an upgrade.
#
# =============================================================================

from __future__ import annotations

import asyncio
import hashlib
import logging
import secrets

import bcrypt

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 100_000
BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


class PasswordHasher:
    """
    One-way, salted password hashing with constant-time verification.

    The iteration count is fixed per deployment and tuned for interactive
    login latency. Use the async variants from request handlers: they run
    on a worker thread so the event loop is never blocked.
    """

    def __init__(self, iterations: int = DEFAULT_ITERATIONS):
        self.iterations = iterations

    def _derive(self, password: str, salt: str) -> str:
        hash_bytes = hashlib.pbkdf2_hmac(
            "sha256",
            password.encode("utf-8"),
            salt.encode("utf-8"),
            iterations=self.iterations,
        )
        return hash_bytes.hex()

    def hash(self, password: str) -> str:
        """
        Hash a password using PBKDF2-SHA256.

        Returns: salt:hash format string
        """
        salt = secrets.token_hex(32)
        return f"{salt}:{self._derive(password, salt)}"

    def verify(self, password: str, password_hash: str) -> bool:
        """Verify a password against its hash. Never raises on mismatch."""
        if not password_hash:
            return False
        if password_hash.startswith(BCRYPT_PREFIXES):
            return self._verify_bcrypt(password, password_hash)
        try:
            salt, stored_hash = password_hash.split(":")
            return secrets.compare_digest(self._derive(password, salt), stored_hash)
        except (ValueError, AttributeError):
            return False

    def _verify_bcrypt(self, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError as e:
            # malformed hash, or a password over bcrypt's 72-byte limit
            logger.warning(f"bcrypt verification failed: {e}")
            return False

    async def hash_async(self, password: str) -> str:
        return await asyncio.to_thread(self.hash, password)

    async def verify_async(self, password: str, password_hash: str) -> bool:
        return await asyncio.to_thread(self.verify, password, password_hash)
