"""
Signing keypair lifecycle.

The KeyStore owns the RSA keypair that signs session tokens. Tokens are
only valid against the currently loaded public key, so rotating the key
logs every client out.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from nodemanager.config import MIN_JWT_KEY_SIZE
from nodemanager.storage.base import KeyNotFoundError, KeyStorage

logger = logging.getLogger(__name__)

PUBLIC_EXPONENT = 65537


@dataclass(frozen=True)
class Keypair:
    """PEM-encoded keypair."""

    private_pem: bytes
    public_pem: bytes

    def __repr__(self) -> str:
        return "Keypair(private_pem=<redacted>, public_pem=...)"


@dataclass(frozen=True)
class SigningOptions:
    """What a token verifier needs."""

    verification_key: bytes
    algorithm: str


def generate_keypair(key_size: int = MIN_JWT_KEY_SIZE) -> Keypair:
    """Generate a new RSA keypair."""
    private_key = rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=key_size)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return Keypair(private_pem=private_pem, public_pem=public_pem)


def keypair_problem(keypair: Keypair, min_key_size: int = MIN_JWT_KEY_SIZE) -> str | None:
    """
    Check a persisted keypair before reuse.

    Returns a description of what is wrong, or None if the keypair is
    usable: an RSA private key of at least `min_key_size` bits whose
    public half matches the stored public key.
    """
    try:
        private_key = serialization.load_pem_private_key(keypair.private_pem, password=None)
        public_key = serialization.load_pem_public_key(keypair.public_pem)
    except (ValueError, TypeError) as e:
        return f"unreadable key material ({e})"

    if not isinstance(private_key, rsa.RSAPrivateKey) or not isinstance(public_key, rsa.RSAPublicKey):
        return "not an RSA keypair"
    if private_key.key_size < min_key_size:
        return f"{private_key.key_size}-bit key is below the {min_key_size}-bit minimum"
    if private_key.public_key().public_numbers() != public_key.public_numbers():
        return "public key does not match private key"
    return None


class KeyStore:
    """
    Owns the token signing keypair.

    Usage:
        keystore = KeyStore(storage)
        await keystore.ensure_keypair()        # at startup
        token = keystore.sign({"sub": "admin"})
        options = keystore.signing_options()  # for verification
    """

    def __init__(
        self,
        storage: KeyStorage,
        key_size: int = MIN_JWT_KEY_SIZE,
        algorithm: str = "RS256",
    ):
        if key_size < MIN_JWT_KEY_SIZE:
            raise ValueError(f"Key size must be at least {MIN_JWT_KEY_SIZE} bits")
        self.storage = storage
        self.key_size = key_size
        self.algorithm = algorithm
        self._keypair: Keypair | None = None
        self._lock = asyncio.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._keypair is not None

    async def ensure_keypair(self, regenerate: bool = False) -> Keypair:
        """
        Load the persisted keypair, generating one if none exists.

        With `regenerate=True` a new keypair always replaces the stored one.
        A stored keypair that is too small, unreadable, or whose halves do
        not match is replaced as well. Storage failures propagate; the API
        cannot serve authenticated routes without keys.
        """
        async with self._lock:
            if not regenerate:
                try:
                    stored = Keypair(
                        private_pem=await self.storage.load_private_key(),
                        public_pem=await self.storage.load_public_key(),
                    )
                except KeyNotFoundError:
                    logger.info("No signing keypair found, generating one")
                else:
                    problem = keypair_problem(stored, self.key_size)
                    if problem is None:
                        self._keypair = stored
                        logger.info("Loaded existing signing keypair")
                        return self._keypair
                    logger.warning(f"Replacing stored signing keypair: {problem}; active sessions are invalidated")
            return await self._generate()

    async def rotate(self) -> Keypair:
        """
        Replace the keypair.

        Every token issued before this call stops verifying, so all active
        sessions are dropped.
        """
        async with self._lock:
            keypair = await self._generate()
        logger.warning("Signing keypair rotated; all active sessions are invalidated")
        return keypair

    async def _generate(self) -> Keypair:
        keypair = await asyncio.to_thread(generate_keypair, self.key_size)
        await self.storage.persist(keypair.private_pem, keypair.public_pem)
        self._keypair = keypair
        logger.info(f"Generated {self.key_size}-bit signing keypair")
        return keypair

    def _current(self) -> Keypair:
        if self._keypair is None:
            raise RuntimeError("KeyStore not initialized; call ensure_keypair() first")
        return self._keypair

    def signing_options(self) -> SigningOptions:
        return SigningOptions(
            verification_key=self._current().public_pem,
            algorithm=self.algorithm,
        )

    def sign(self, claims: dict[str, Any]) -> str:
        """Sign claims with the current private key."""
        return jwt.encode(claims, self._current().private_pem, algorithm=self.algorithm)
