# =============================================================================
# Account API Routes
# =============================================================================
#
# Endpoints:
#   GET  /v1/account/registered      - Is there an account yet?
#   POST /v1/account/register        - Create the account (once)
#   POST /v1/account/login           - Password -> token
#   POST /v1/account/refresh         - Token -> fresh token
#   GET  /v1/account/info            - Account details
#   POST /v1/account/change-password - Replace the password
#
# Login and change-password accept the password in the JSON body or as
# Basic auth; see credentials_from_request().
#
# =============================================================================

import logging

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from nodemanager.auth.context import AuthContext
from nodemanager.auth.jwt import TokenResponse, create_token
from nodemanager.auth.policies import (
    basic_guard,
    bearer_guard,
    get_gate,
    registration_guard,
)
from nodemanager.auth.state import AlreadyRegisteredError
from nodemanager.auth.strategies import RegistrationCandidate
from nodemanager.core import validators
from nodemanager.core.errors import STATUS_CODES, NodeError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/account", tags=["account"])


# =============================================================================
# Request/Response Models
# =============================================================================

class RegisterRequest(BaseModel):
    name: str = ""
    password: str


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    password: str | None = None
    new_password: str = Field(alias="newPassword")


class RegisteredResponse(BaseModel):
    registered: bool


class InfoResponse(BaseModel):
    name: str


class MessageResponse(BaseModel):
    message: str


# =============================================================================
# Helpers
# =============================================================================

def _keystore(request: Request):
    return request.app.state.keystore


# =============================================================================
# Public Endpoints
# =============================================================================

@router.get("/registered", response_model=RegisteredResponse)
async def registered(request: Request):
    """Whether the node has been registered."""
    return RegisteredResponse(registered=await get_gate(request).identity.is_registered())


@router.post("/register", response_model=TokenResponse)
async def register(
    data: RegisterRequest,
    request: Request,
    candidate: RegistrationCandidate = Depends(registration_guard),
):
    """
    Create the node's account.

    Only reachable while the node is unregistered. Returns a token so
    the dashboard is logged in straight away. When both an Authorization
    header and a body password are sent they must agree; the validated
    password is the one that gets stored.
    """
    if candidate.password != data.password:
        raise ValidationError("Passwords in header and body do not match.")
    validators.validate_password(candidate.password)
    if data.name:
        validators.is_alphanumeric_and_spaces(data.name)
        validators.is_valid_name_length(data.name)

    try:
        await get_gate(request).identity.register(candidate.record.model_copy(update={"name": data.name}))
    except AlreadyRegisteredError as e:
        raise NodeError(str(e), STATUS_CODES.CONFLICT)

    return TokenResponse(jwt=create_token(_keystore(request)))


@router.post("/login", response_model=TokenResponse)
async def login(request: Request, ctx: AuthContext = Depends(basic_guard)):
    """Exchange the account password for a token."""
    logger.info(f"Login succeeded for {ctx.username}")
    return TokenResponse(jwt=create_token(_keystore(request)))


# =============================================================================
# Protected Endpoints
# =============================================================================

@router.post("/refresh", response_model=TokenResponse)
async def refresh(request: Request, ctx: AuthContext = Depends(bearer_guard)):
    """Issue a fresh token for a valid one."""
    return TokenResponse(jwt=create_token(_keystore(request)))


@router.get("/info", response_model=InfoResponse)
async def info(request: Request, ctx: AuthContext = Depends(bearer_guard)):
    """Account details. Never includes the password hash."""
    record = await get_gate(request).identity.credentials.read()
    return InfoResponse(name=record.name)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    data: ChangePasswordRequest,
    request: Request,
    ctx: AuthContext = Depends(basic_guard),
):
    """
    Replace the account password.

    The current password is checked by the guard; a wrong one answers
    403 so the dashboard keeps its session.
    """
    validators.validate_password(data.new_password)

    gate = get_gate(request)
    password_hash = await gate.basic.hasher.hash_async(data.new_password)
    await gate.identity.change_password(password_hash)
    return MessageResponse(message="Password changed")
