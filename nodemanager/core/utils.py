"""
Shared utility functions for the node manager.

This module contains common utilities used across the codebase.
"""

from __future__ import annotations

import base64
import uuid
from datetime import datetime, timezone


def generate_id(prefix: str = "") -> str:
    """
    Generate a unique ID with optional prefix.

    Args:
        prefix: Optional prefix (e.g., "req", "tmp")

    Returns:
        A unique ID like "req_a1b2c3d4e5f6"
    """
    uid = uuid.uuid4().hex[:12]
    return f"{prefix}_{uid}" if prefix else uid


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def b64encode(value: str) -> str:
    """Base64-encode a UTF-8 string."""
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def b64decode(value: str) -> str:
    """
    Decode a base64 string to UTF-8.

    Raises ValueError on invalid base64 or non UTF-8 content.
    """
    return base64.b64decode(value, validate=True).decode("utf-8")
