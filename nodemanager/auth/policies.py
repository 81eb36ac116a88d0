"""
Guards - the interface between routes and authentication strategies.

Usage in routes:
    @router.post("/login")
    async def login(ctx: AuthContext = Depends(basic_guard)):
        ...

Design:
- The AuthorizationGate is built once at startup and stored on app.state
- It holds a dispatch table from GuardType to a verification procedure
- Strategies return Granted / Denied; the gate turns Denied into a NodeError
- Denials map to 401, except a wrong password, which is 403
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Awaitable, Callable

from fastapi import Depends, Request

from nodemanager.auth.context import AuthContext, AuthResult, Denied, DenialReason, Granted
from nodemanager.auth.keys import KeyStore
from nodemanager.auth.passwords import PasswordHasher
from nodemanager.auth.state import IdentityState
from nodemanager.auth.strategies import (
    BasicStrategy,
    BearerStrategy,
    RegistrationStrategy,
    basic_authorization,
)
from nodemanager.core.errors import STATUS_CODES, NodeError
from nodemanager.storage.base import CredentialStore

logger = logging.getLogger(__name__)

Procedure = Callable[[str | None], Awaitable[AuthResult[Any]]]


class GuardType(str, Enum):
    BASIC = "basic"
    BEARER = "bearer"
    CONDITIONAL_BEARER = "conditional_bearer"
    REGISTRATION = "registration"


# =============================================================================
# Denial -> response mapping
# =============================================================================


INCORRECT_PASSWORD_MESSAGE = "Incorrect password"

DENIAL_RESPONSES: dict[DenialReason, tuple[str, int]] = {
    DenialReason.NO_CREDENTIALS: ("Invalid state", STATUS_CODES.UNAUTHORIZED),
    DenialReason.INVALID_CREDENTIALS: ("Invalid state", STATUS_CODES.UNAUTHORIZED),
    DenialReason.NOT_REGISTERED: ("No user registered", STATUS_CODES.UNAUTHORIZED),
    DenialReason.INCORRECT_PASSWORD: (INCORRECT_PASSWORD_MESSAGE, STATUS_CODES.UNAUTHORIZED),
    DenialReason.INVALID_TOKEN: ("Invalid JWT", STATUS_CODES.UNAUTHORIZED),
    DenialReason.ALREADY_REGISTERED: ("User already exists", STATUS_CODES.CONFLICT),
}


def denial_error(reason: DenialReason) -> NodeError:
    message, status_code = DENIAL_RESPONSES[reason]
    return NodeError(message, status_code)


def remap_incorrect_password(error: NodeError) -> NodeError:
    """
    Turn a wrong-password 401 into a 403.

    The dashboard treats any 401 as an expired session and logs out,
    so a mistyped password must not answer 401.
    """
    if error.message == INCORRECT_PASSWORD_MESSAGE and error.status_code == STATUS_CODES.UNAUTHORIZED:
        return NodeError(INCORRECT_PASSWORD_MESSAGE, STATUS_CODES.FORBIDDEN)
    return error


# =============================================================================
# Request credentials
# =============================================================================


async def credentials_from_request(request: Request) -> str | None:
    """
    Return the Authorization header, or one built from the JSON body.

    A request without the header but with a body `password` is treated
    as Basic auth for the system user, so body logins and header logins
    take the same path.
    """
    header = request.headers.get("authorization")
    if header:
        return header

    try:
        body = await request.json()
    except ValueError:
        return None
    password = body.get("password") if isinstance(body, dict) else None
    if isinstance(password, str) and password:
        return basic_authorization(password)
    return None


# =============================================================================
# The gate
# =============================================================================


class AuthorizationGate:
    """
    Request-level authorization decisions.

    Holds one verification procedure per GuardType. Built once at
    startup; see AuthorizationGate.create().
    """

    def __init__(
        self,
        identity: IdentityState,
        basic: BasicStrategy,
        bearer: BearerStrategy,
        registration: RegistrationStrategy,
    ):
        self.identity = identity
        self.basic = basic
        self.bearer = bearer
        self.registration = registration

        self._procedures: dict[GuardType, Procedure] = {
            GuardType.BASIC: self._check_basic,
            GuardType.BEARER: self._check_bearer,
            GuardType.CONDITIONAL_BEARER: self._check_conditional_bearer,
            GuardType.REGISTRATION: self._check_registration,
        }

    @classmethod
    def create(
        cls,
        credentials: CredentialStore,
        keystore: KeyStore,
        hasher: PasswordHasher,
        identity: IdentityState | None = None,
    ) -> AuthorizationGate:
        return cls(
            identity=identity or IdentityState(credentials),
            basic=BasicStrategy(credentials, hasher),
            bearer=BearerStrategy(keystore),
            registration=RegistrationStrategy(hasher),
        )

    # =========================================================================
    # Procedures
    # =========================================================================

    async def _check_basic(self, authorization: str | None) -> AuthResult[AuthContext]:
        return await self.basic.authenticate(authorization)

    async def _check_bearer(self, authorization: str | None) -> AuthResult[AuthContext]:
        result = await self.bearer.authenticate(authorization)
        if isinstance(result, Denied):
            return Denied(DenialReason.INVALID_TOKEN)
        return result

    async def _check_conditional_bearer(self, authorization: str | None) -> AuthResult[AuthContext]:
        if not await self.identity.is_registered():
            return Granted(AuthContext.not_registered())
        return await self._check_bearer(authorization)

    async def _check_registration(self, authorization: str | None) -> AuthResult[Any]:
        if await self.identity.is_registered():
            return Denied(DenialReason.ALREADY_REGISTERED)
        return await self.registration.authenticate(authorization)

    # =========================================================================
    # Entry points
    # =========================================================================

    async def check(self, guard: GuardType, authorization: str | None) -> AuthResult[Any]:
        """Run the guard's procedure without touching HTTP."""
        return await self._procedures[guard](authorization)

    async def authorize(self, guard: GuardType, request: Request) -> Any:
        """
        Run a guard for a request.

        Returns the granted value (AuthContext, or the RegistrationCandidate
        for registration). Raises NodeError on denial.
        """
        authorization = await credentials_from_request(request)
        result = await self.check(guard, authorization)

        if isinstance(result, Granted):
            return result.value

        logger.info(f"{guard.value} guard denied {request.url.path}: {result.reason.value}")
        error = denial_error(result.reason)
        if guard == GuardType.BASIC:
            error = remap_incorrect_password(error)
        raise error


# =============================================================================
# FastAPI dependencies
# =============================================================================


def get_gate(request: Request) -> AuthorizationGate:
    return request.app.state.gate


def _create_dependency(guard: GuardType) -> Callable:
    """Create a FastAPI Depends for a guard."""

    async def dependency(
        request: Request,
        gate: AuthorizationGate = Depends(get_gate),
    ) -> Any:
        return await gate.authorize(guard, request)

    dependency.__name__ = f"{guard.value}_guard"
    return dependency


basic_guard = _create_dependency(GuardType.BASIC)
bearer_guard = _create_dependency(GuardType.BEARER)
conditional_bearer_guard = _create_dependency(GuardType.CONDITIONAL_BEARER)
registration_guard = _create_dependency(GuardType.REGISTRATION)
