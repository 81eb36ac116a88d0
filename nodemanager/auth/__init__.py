"""
Credential issuance and request authorization.

- KeyStore signs and verifies session tokens
- PasswordHasher hashes and checks the account password
- Strategies verify Basic credentials, tokens, and first registration
- IdentityState owns the one-time registration transition
- Guards attach the result to routes as FastAPI dependencies
"""

from nodemanager.auth.context import AuthContext, Denied, DenialReason, Granted
from nodemanager.auth.keys import Keypair, KeyStore, SigningOptions, generate_keypair
from nodemanager.auth.passwords import PasswordHasher
from nodemanager.auth.jwt import (
    TokenError,
    TokenInvalidError,
    TokenPayload,
    TokenResponse,
    create_token,
    decode_token,
)
from nodemanager.auth.state import AlreadyRegisteredError, IdentityState, Registration
from nodemanager.auth.strategies import (
    BasicStrategy,
    BearerStrategy,
    RegistrationCandidate,
    RegistrationStrategy,
    basic_authorization,
)
from nodemanager.auth.policies import (
    AuthorizationGate,
    GuardType,
    basic_guard,
    bearer_guard,
    conditional_bearer_guard,
    registration_guard,
)
from nodemanager.auth.routes import router as account_router

__all__ = [
    # Context & results
    "AuthContext",
    "Denied",
    "DenialReason",
    "Granted",
    # Keys & tokens
    "Keypair",
    "KeyStore",
    "SigningOptions",
    "generate_keypair",
    "TokenError",
    "TokenInvalidError",
    "TokenPayload",
    "TokenResponse",
    "create_token",
    "decode_token",
    # Passwords
    "PasswordHasher",
    # Registration
    "AlreadyRegisteredError",
    "IdentityState",
    "Registration",
    # Strategies
    "BasicStrategy",
    "BearerStrategy",
    "RegistrationCandidate",
    "RegistrationStrategy",
    "basic_authorization",
    # Guards
    "AuthorizationGate",
    "GuardType",
    "basic_guard",
    "bearer_guard",
    "conditional_bearer_guard",
    "registration_guard",
    # Router
    "account_router",
]
