"""
Core module - shared infrastructure.

This module contains:
- errors: HTTP-facing error types and status codes
- validators: Input validators for request fields
- log: Logging setup and request correlation
- utils: Shared utility functions
"""

from nodemanager.core.errors import (
    NodeError,
    ValidationError,
    StorageError,
    STATUS_CODES,
)
from nodemanager.core.utils import generate_id, utc_now, b64encode, b64decode

__all__ = [
    "NodeError",
    "ValidationError",
    "StorageError",
    "STATUS_CODES",
    "generate_id",
    "utc_now",
    "b64encode",
    "b64decode",
]
