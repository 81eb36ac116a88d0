# =============================================================================
# Session Tokens
# =============================================================================
#
# Tokens are RS256 JWTs carrying a single subject claim: there is only one
# account on the node. No expiry is issued or enforced; a token is valid
# until the signing key is rotated.
#
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pydantic import BaseModel
import jwt

from nodemanager.auth.keys import KeyStore, SigningOptions
from nodemanager.core.utils import utc_now
from nodemanager.storage.base import SYSTEM_USER

logger = logging.getLogger(__name__)


# =============================================================================
# Models
# =============================================================================

class TokenPayload(BaseModel):
    """JWT token payload."""
    sub: str
    iat: datetime | None = None


class TokenResponse(BaseModel):
    """Token returned to the dashboard."""
    jwt: str


# =============================================================================
# Token Creation
# =============================================================================

def create_token(keystore: KeyStore) -> str:
    """Issue a session token signed with the current private key."""
    payload = {
        "sub": SYSTEM_USER,
        "iat": utc_now(),
    }
    return keystore.sign(payload)


# =============================================================================
# Token Validation
# =============================================================================

class TokenError(Exception):
    """Base exception for token errors."""
    pass


class TokenInvalidError(TokenError):
    """Token is invalid, malformed, or signed with another key."""
    pass


def decode_token(token: str, options: SigningOptions) -> TokenPayload:
    """
    Decode and validate a JWT token.

    Args:
        token: The JWT string
        options: Verification key and algorithm from the KeyStore

    Returns:
        TokenPayload with validated claims

    Raises:
        TokenInvalidError: Token is invalid
    """
    try:
        payload = jwt.decode(
            token,
            options.verification_key,
            algorithms=[options.algorithm],
            options={"require": ["sub"], "verify_exp": False},
        )
    except jwt.InvalidTokenError as e:
        raise TokenInvalidError(f"Invalid token: {e}")

    if payload["sub"] != SYSTEM_USER:
        raise TokenInvalidError("Invalid token: unknown subject")

    iat = payload.get("iat")
    return TokenPayload(
        sub=payload["sub"],
        iat=datetime.fromtimestamp(iat, tz=timezone.utc) if isinstance(iat, (int, float)) else None,
    )
