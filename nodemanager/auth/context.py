"""
Auth context - who the request is acting as.

Strategies return an AuthResult: Granted with a context, or Denied with
a reason. Nothing here raises; the gate decides what a denial means for
the HTTP response.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

from nodemanager.storage.base import SYSTEM_USER

T = TypeVar("T")


class DenialReason(str, Enum):
    """Why a strategy refused a request."""

    NO_CREDENTIALS = "no_credentials"
    INVALID_CREDENTIALS = "invalid_credentials"
    INCORRECT_PASSWORD = "incorrect_password"
    INVALID_TOKEN = "invalid_token"
    NOT_REGISTERED = "not_registered"
    ALREADY_REGISTERED = "already_registered"


@dataclass(frozen=True)
class AuthContext:
    """
    Identity attached to an authorized request.

    There is one account on the node, so the context is just its
    username. The `not_registered` sentinel is attached by the
    conditional guard while no account exists; handlers that receive
    it must enforce any registration requirement themselves.

    Usage in routes:
        async def my_route(ctx: AuthContext = Depends(bearer_guard)):
            ...
    """

    username: str | None = None
    registered: bool = True

    @property
    def is_authenticated(self) -> bool:
        return self.username is not None and self.registered

    @classmethod
    def system_user(cls) -> AuthContext:
        return cls(username=SYSTEM_USER)

    @classmethod
    def not_registered(cls) -> AuthContext:
        return cls(username=None, registered=False)


@dataclass(frozen=True)
class Granted(Generic[T]):
    value: T


@dataclass(frozen=True)
class Denied:
    reason: DenialReason


AuthResult = Union[Granted[T], Denied]
