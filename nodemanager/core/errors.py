"""
Error types shared by the API layer and its collaborators.

NodeError carries the HTTP status the client sees. Its message is the
response body, so keep messages stable: the dashboard matches on them.
"""

from __future__ import annotations


class STATUS_CODES:
    """HTTP status codes used by the API."""

    OK = 200
    ACCEPTED = 202
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    INTERNAL_SERVER_ERROR = 500
    BAD_GATEWAY = 502


class NodeError(Exception):
    """An error that terminates a request with a status code."""

    def __init__(self, message: str, status_code: int = STATUS_CODES.INTERNAL_SERVER_ERROR):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, status_code={self.status_code})"


class ValidationError(NodeError):
    """Request input failed validation."""

    def __init__(self, message: str, status_code: int = STATUS_CODES.BAD_REQUEST):
        super().__init__(message, status_code)


class StorageError(Exception):
    """A collaborator failed to read or write persistent state."""
    pass
