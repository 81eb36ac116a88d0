"""
Storage abstraction layer.

All persistence goes through these interfaces. The supervisor shares the
files behind them with this process, so every implementation must write
atomically: a reader never sees a half-written record or key.

- CredentialStore → the single identity record (user.json)
- KeyStorage      → the token signing keypair (PEM files)
- SignalStorage   → files shared with the supervisor: signals it acts upon,
                    status files it writes, the version file and Tor
                    hidden service hostnames
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from nodemanager.core.errors import StorageError


SYSTEM_USER = "admin"


# =============================================================================
# Errors
# =============================================================================


class RecordNotFoundError(StorageError):
    """No identity record has been written yet."""
    pass


class RecordExistsError(StorageError):
    """An identity record already exists; create() is write-once."""
    pass


class KeyNotFoundError(StorageError):
    """No keypair has been persisted yet."""
    pass


# =============================================================================
# Models
# =============================================================================


class IdentityRecord(BaseModel):
    """
    The appliance's single administrative account.

    Only the hash is ever stored. `password` is the on-disk key name
    used by earlier releases and is kept for compatibility.
    """

    model_config = {"populate_by_name": True}

    username: str = SYSTEM_USER
    password_hash: str = Field(alias="password")
    name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    def __repr__(self) -> str:
        return f"IdentityRecord(username={self.username!r}, name={self.name!r})"

    __str__ = __repr__


# =============================================================================
# Storage Interfaces
# =============================================================================


class CredentialStore(ABC):
    """
    Holds exactly one identity record.

    Local Implementation: JSON file written with exclusive-create semantics
    Test Implementation: in-memory
    """

    @abstractmethod
    async def read(self) -> IdentityRecord:
        """Return the record. Raises RecordNotFoundError if none exists."""
        pass

    @abstractmethod
    async def create(self, record: IdentityRecord) -> None:
        """Write the record once. Raises RecordExistsError if one exists."""
        pass

    @abstractmethod
    async def update(self, record: IdentityRecord) -> None:
        """Replace an existing record. Raises RecordNotFoundError if none exists."""
        pass

    async def exists(self) -> bool:
        try:
            await self.read()
        except RecordNotFoundError:
            return False
        return True


class KeyStorage(ABC):
    """Persistence for the PEM-encoded signing keypair."""

    @abstractmethod
    async def persist(self, private_pem: bytes, public_pem: bytes) -> None:
        """Store both halves of the keypair."""
        pass

    @abstractmethod
    async def load_private_key(self) -> bytes:
        """Raises KeyNotFoundError if absent."""
        pass

    @abstractmethod
    async def load_public_key(self) -> bytes:
        """Raises KeyNotFoundError if absent."""
        pass


class SignalStorage(ABC):
    """
    Files shared with the supervisor.

    Signals are written here and acted upon by the supervisor. Status
    files, the version file and hidden service hostnames are written by
    the supervisor and only read here, apart from dismissing a status.

    Read failures raise StorageError.
    """

    @abstractmethod
    async def write_signal(self, name: str) -> None:
        """Raise a signal (e.g. "reboot") for the supervisor."""
        pass

    @abstractmethod
    async def read_version_info(self) -> dict[str, Any]:
        """Read the installed release's version info."""
        pass

    @abstractmethod
    async def read_json_status(self, name: str) -> dict[str, Any]:
        """Read a JSON status file (e.g. "update-status")."""
        pass

    @abstractmethod
    async def status_exists(self, name: str) -> bool:
        """Whether a flag status file (e.g. "memory-warning") is present."""
        pass

    @abstractmethod
    async def clear_status(self, name: str) -> None:
        """Remove a flag status file. Absent files are not an error."""
        pass

    @abstractmethod
    async def read_hidden_service(self, name: str) -> str:
        """Read the .onion hostname of a Tor hidden service (e.g. "web")."""
        pass


# =============================================================================
# Storage Provider (dependency injection container)
# =============================================================================


class StorageProvider(BaseModel):
    """
    Container for all storage backends.

    Initialize once at app startup with appropriate implementations.
    """

    model_config = {"arbitrary_types_allowed": True}

    credentials: CredentialStore
    keys: KeyStorage
    signals: SignalStorage
