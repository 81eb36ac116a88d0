"""
Local storage implementations.

File-backed implementations share their files with the supervisor.
In-memory implementations are for tests and development.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError as ModelValidationError

from nodemanager.config import Settings
from nodemanager.core.errors import StorageError
from nodemanager.core.utils import generate_id
from nodemanager.storage.base import (
    CredentialStore,
    IdentityRecord,
    KeyNotFoundError,
    KeyStorage,
    RecordExistsError,
    RecordNotFoundError,
    SignalStorage,
    StorageProvider,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Atomic file helpers
# =============================================================================


def _temp_path(path: Path) -> Path:
    return path.with_name(f"{path.name}.{generate_id('tmp')}")


def _write_temp(path: Path, data: bytes, mode: int) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    temp = _temp_path(path)
    fd = os.open(temp, os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
    except BaseException:
        temp.unlink(missing_ok=True)
        raise
    return temp


def atomic_write(path: Path, data: bytes, mode: int = 0o644) -> None:
    """Write via a temp file and rename, replacing any existing file."""
    temp = _write_temp(path, data, mode)
    try:
        os.replace(temp, path)
    except OSError:
        temp.unlink(missing_ok=True)
        logger.warning(f"Removed temporary file after failed write: {temp}")
        raise


def exclusive_write(path: Path, data: bytes, mode: int = 0o644) -> None:
    """
    Write a complete file only if `path` does not exist yet.

    The hard link is the atomic step: it fails with FileExistsError when
    another writer got there first, and readers never see partial content.
    """
    temp = _write_temp(path, data, mode)
    try:
        os.link(temp, path)
    finally:
        temp.unlink(missing_ok=True)


def _read_json(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _dump_json(data: Any) -> bytes:
    return json.dumps(data, indent=2).encode("utf-8")


# =============================================================================
# Credential Storage
# =============================================================================


class FileCredentialStore(CredentialStore):
    """Identity record in a JSON file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def read(self) -> IdentityRecord:
        try:
            data = _read_json(self.path)
        except FileNotFoundError:
            raise RecordNotFoundError(f"No identity record at {self.path}")
        except (OSError, ValueError) as e:
            raise StorageError(f"Unable to read identity record: {e}") from e

        if not isinstance(data, dict):
            raise StorageError("Malformed identity record: not a JSON object")
        try:
            return IdentityRecord.model_validate(data)
        except ModelValidationError as e:
            raise StorageError(f"Malformed identity record: {e}") from e

    async def create(self, record: IdentityRecord) -> None:
        try:
            exclusive_write(self.path, _dump_json(record.to_dict()), mode=0o600)
        except FileExistsError:
            raise RecordExistsError("Identity record already exists")
        except OSError as e:
            raise StorageError(f"Unable to write identity record: {e}") from e
        logger.info(f"Identity record created at {self.path}")

    async def update(self, record: IdentityRecord) -> None:
        try:
            current = _read_json(self.path)
        except FileNotFoundError:
            raise RecordNotFoundError(f"No identity record at {self.path}")
        except (OSError, ValueError) as e:
            raise StorageError(f"Unable to read identity record: {e}") from e

        # Preserve fields owned by other components (e.g. installedApps)
        merged = {**current, **record.to_dict()} if isinstance(current, dict) else record.to_dict()
        try:
            atomic_write(self.path, _dump_json(merged), mode=0o600)
        except OSError as e:
            raise StorageError(f"Unable to write identity record: {e}") from e
        logger.info(f"Identity record updated at {self.path}")


class InMemoryCredentialStore(CredentialStore):
    """In-memory identity record for development and tests."""

    def __init__(self, record: IdentityRecord | None = None):
        self._record = record
        self._lock = asyncio.Lock()

    async def read(self) -> IdentityRecord:
        if self._record is None:
            raise RecordNotFoundError("No identity record")
        return self._record.model_copy()

    async def create(self, record: IdentityRecord) -> None:
        async with self._lock:
            if self._record is not None:
                raise RecordExistsError("Identity record already exists")
            self._record = record.model_copy()

    async def update(self, record: IdentityRecord) -> None:
        async with self._lock:
            if self._record is None:
                raise RecordNotFoundError("No identity record")
            self._record = record.model_copy()


# =============================================================================
# Key Storage
# =============================================================================


class FileKeyStorage(KeyStorage):
    """PEM files for the signing keypair."""

    def __init__(self, private_key_path: str | Path, public_key_path: str | Path):
        self.private_key_path = Path(private_key_path)
        self.public_key_path = Path(public_key_path)

    async def persist(self, private_pem: bytes, public_pem: bytes) -> None:
        try:
            atomic_write(self.private_key_path, private_pem, mode=0o600)
            atomic_write(self.public_key_path, public_pem, mode=0o644)
        except OSError as e:
            raise StorageError(f"Unable to persist signing keys: {e}") from e

    async def load_private_key(self) -> bytes:
        return self._load(self.private_key_path)

    async def load_public_key(self) -> bytes:
        return self._load(self.public_key_path)

    def _load(self, path: Path) -> bytes:
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            raise KeyNotFoundError(f"No key at {path}")
        except OSError as e:
            raise StorageError(f"Unable to read key {path}: {e}") from e
        if not data.strip():
            raise KeyNotFoundError(f"Empty key file at {path}")
        return data


class InMemoryKeyStorage(KeyStorage):
    """In-memory keypair for development and tests."""

    def __init__(self, private_pem: bytes | None = None, public_pem: bytes | None = None):
        self._private = private_pem
        self._public = public_pem

    async def persist(self, private_pem: bytes, public_pem: bytes) -> None:
        self._private = private_pem
        self._public = public_pem

    async def load_private_key(self) -> bytes:
        if self._private is None:
            raise KeyNotFoundError("No private key")
        return self._private

    async def load_public_key(self) -> bytes:
        if self._public is None:
            raise KeyNotFoundError("No public key")
        return self._public


# =============================================================================
# Signal Storage
# =============================================================================


class FileSignalStorage(SignalStorage):
    """
    Signal, status and hostname files shared with the supervisor.

    Layout:
        <signal_dir>/<name>                      signal, contents "true"
        <status_dir>/<name>.json                 JSON status
        <status_dir>/<name>                      flag status
        <hidden_service_dir>/<name>/hostname     Tor .onion address
    """

    def __init__(
        self,
        signal_dir: str | Path,
        version_file: str | Path,
        status_dir: str | Path = "/statuses",
        hidden_service_dir: str | Path = "/var/lib/tor",
    ):
        self.signal_dir = Path(signal_dir)
        self.version_file = Path(version_file)
        self.status_dir = Path(status_dir)
        self.hidden_service_dir = Path(hidden_service_dir)

    async def write_signal(self, name: str) -> None:
        path = self.signal_dir / name
        try:
            atomic_write(path, b"true")
        except OSError as e:
            raise StorageError(f"Unable to write signal {name}: {e}") from e
        logger.info(f"Signal raised: {name}")

    async def read_version_info(self) -> dict[str, Any]:
        return self._read_object(self.version_file)

    async def read_json_status(self, name: str) -> dict[str, Any]:
        return self._read_object(self.status_dir / f"{name}.json")

    async def status_exists(self, name: str) -> bool:
        return (self.status_dir / name).exists()

    async def clear_status(self, name: str) -> None:
        try:
            (self.status_dir / name).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Unable to clear status {name}: {e}") from e
        logger.info(f"Status cleared: {name}")

    async def read_hidden_service(self, name: str) -> str:
        path = self.hidden_service_dir / name / "hostname"
        try:
            hostname = path.read_text(encoding="utf-8").strip()
        except OSError as e:
            raise StorageError(f"Unable to read hidden service {name}: {e}") from e
        if not hostname:
            raise StorageError(f"Hidden service {name} has no hostname yet")
        return hostname

    def _read_object(self, path: Path) -> dict[str, Any]:
        try:
            data = _read_json(path)
        except (OSError, ValueError) as e:
            raise StorageError(f"Unable to read {path.name}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"{path.name} is not a JSON object")
        return data


# =============================================================================
# Factory
# =============================================================================


def create_local_storage(settings: Settings) -> StorageProvider:
    """Create a StorageProvider backed by the configured files."""
    return StorageProvider(
        credentials=FileCredentialStore(settings.user_file),
        keys=FileKeyStorage(settings.jwt_private_key_file, settings.jwt_public_key_file),
        signals=FileSignalStorage(
            settings.signal_dir,
            settings.version_file,
            status_dir=settings.status_dir,
            hidden_service_dir=settings.tor_hidden_service_dir,
        ),
    )
