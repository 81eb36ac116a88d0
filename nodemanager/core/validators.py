"""
Input validators.

Each validator raises ValidationError (400) with a user-facing message
and returns nothing on success.
"""

from __future__ import annotations

import re
from typing import Any

from nodemanager.core.errors import ValidationError

MIN_PASSWORD_LENGTH = 12
MAX_NAME_LENGTH = 64

_ALPHANUMERIC_AND_SPACES = re.compile(r"^[a-zA-Z0-9\s]*$")


def is_defined(value: Any) -> None:
    if value is None:
        raise ValidationError("Must define variable.")


def is_string(value: Any) -> None:
    if not isinstance(value, str):
        raise ValidationError("Object must be of type string.")


def is_min_password_length(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Must be {MIN_PASSWORD_LENGTH} or more characters.")


def is_alphanumeric_and_spaces(value: str) -> None:
    is_defined(value)
    if not _ALPHANUMERIC_AND_SPACES.match(value):
        raise ValidationError("Must include only alpha numeric characters and spaces.")


def is_valid_name_length(value: str) -> None:
    if len(value) > MAX_NAME_LENGTH:
        raise ValidationError(f"Must be {MAX_NAME_LENGTH} or fewer characters.")


def validate_password(password: Any) -> None:
    """Full check for a password chosen by the user."""
    is_defined(password)
    is_string(password)
    is_min_password_length(password)
