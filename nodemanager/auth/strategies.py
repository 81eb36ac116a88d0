"""
Authentication strategies.

Each strategy turns the request's Authorization header into an
AuthResult. Failures are returned as Denied values, never raised.

Transport shapes:
    Basic:  "Basic " + base64("<user>:" + base64(password))
    Bearer: "JWT <token>"

The password is base64-encoded inside the Basic credentials so that
":" and other special characters survive the header encoding. Clients
depend on this.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from fastapi.security.utils import get_authorization_scheme_param

from nodemanager.auth.context import AuthContext, AuthResult, Denied, DenialReason, Granted
from nodemanager.auth.jwt import TokenInvalidError, decode_token
from nodemanager.auth.keys import KeyStore
from nodemanager.auth.passwords import PasswordHasher
from nodemanager.core.utils import b64decode, b64encode
from nodemanager.storage.base import (
    SYSTEM_USER,
    CredentialStore,
    IdentityRecord,
    RecordNotFoundError,
)

logger = logging.getLogger(__name__)

BASIC_SCHEME = "basic"
TOKEN_SCHEME = "jwt"


# =============================================================================
# Credential Parsing
# =============================================================================


@dataclass(frozen=True)
class BasicCredentials:
    username: str
    password: str

    def __repr__(self) -> str:
        return f"BasicCredentials(username={self.username!r}, password=<redacted>)"


def split_authorization(header: str | None) -> tuple[str, str] | None:
    """Split an Authorization header into (lowercased scheme, credentials)."""
    scheme, credentials = get_authorization_scheme_param(header.strip() if header else None)
    credentials = credentials.strip()
    if not scheme or not credentials:
        return None
    return scheme.lower(), credentials


def basic_authorization(password: str, username: str = SYSTEM_USER) -> str:
    """Build a Basic Authorization header value for a plaintext password."""
    return "Basic " + b64encode(f"{username}:{b64encode(password)}")


def extract_basic(header: str | None) -> AuthResult[BasicCredentials]:
    if not header:
        return Denied(DenialReason.NO_CREDENTIALS)
    parts = split_authorization(header)
    if parts is None or parts[0] != BASIC_SCHEME:
        return Denied(DenialReason.INVALID_CREDENTIALS)
    try:
        username, sep, encoded_password = b64decode(parts[1]).partition(":")
        if not sep:
            return Denied(DenialReason.INVALID_CREDENTIALS)
        password = b64decode(encoded_password)
    except ValueError:
        return Denied(DenialReason.INVALID_CREDENTIALS)
    if not password:
        return Denied(DenialReason.INVALID_CREDENTIALS)
    return Granted(BasicCredentials(username=username, password=password))


def extract_token(header: str | None, scheme: str = TOKEN_SCHEME) -> str | None:
    parts = split_authorization(header)
    if parts is None or parts[0] != scheme:
        return None
    return parts[1]


# =============================================================================
# Strategies
# =============================================================================


class Strategy(ABC):
    """A named verification procedure over request credentials."""

    name: str = ""

    @abstractmethod
    async def authenticate(self, authorization: str | None) -> AuthResult[Any]:
        pass


class BasicStrategy(Strategy):
    """Password check against the stored identity record."""

    name = "basic"

    def __init__(self, credentials: CredentialStore, hasher: PasswordHasher):
        self.credentials = credentials
        self.hasher = hasher

    async def authenticate(self, authorization: str | None) -> AuthResult[AuthContext]:
        parsed = extract_basic(authorization)
        if isinstance(parsed, Denied):
            return parsed

        try:
            record = await self.credentials.read()
        except RecordNotFoundError:
            return Denied(DenialReason.NOT_REGISTERED)

        if not await self.hasher.verify_async(parsed.value.password, record.password_hash):
            return Denied(DenialReason.INCORRECT_PASSWORD)

        return Granted(AuthContext.system_user())


class BearerStrategy(Strategy):
    """Signed token check against the KeyStore's current public key."""

    name = "jwt"

    def __init__(self, keystore: KeyStore, scheme: str = TOKEN_SCHEME):
        self.keystore = keystore
        self.scheme = scheme.lower()

    async def authenticate(self, authorization: str | None) -> AuthResult[AuthContext]:
        if not authorization:
            return Denied(DenialReason.NO_CREDENTIALS)
        token = extract_token(authorization, self.scheme)
        if token is None:
            return Denied(DenialReason.INVALID_TOKEN)

        try:
            decode_token(token, self.keystore.signing_options())
        except TokenInvalidError as e:
            logger.debug(f"Token rejected: {e}")
            return Denied(DenialReason.INVALID_TOKEN)

        return Granted(AuthContext.system_user())


@dataclass(frozen=True)
class RegistrationCandidate:
    """
    An identity record waiting to be persisted, and the password it was
    hashed from.

    The password is kept so the route can validate exactly what will be
    stored. It never leaves the request.
    """

    record: IdentityRecord
    password: str

    def __repr__(self) -> str:
        return f"RegistrationCandidate(record={self.record!r}, password=<redacted>)"


class RegistrationStrategy(Strategy):
    """
    Captures the first credential pair as a RegistrationCandidate.

    The candidate is not persisted here; IdentityState.register() does
    that atomically.
    """

    name = "register"

    def __init__(self, hasher: PasswordHasher):
        self.hasher = hasher

    async def authenticate(self, authorization: str | None) -> AuthResult[RegistrationCandidate]:
        parsed = extract_basic(authorization)
        if isinstance(parsed, Denied):
            return parsed

        password_hash = await self.hasher.hash_async(parsed.value.password)
        return Granted(RegistrationCandidate(
            record=IdentityRecord(username=SYSTEM_USER, password_hash=password_hash),
            password=parsed.value.password,
        ))
