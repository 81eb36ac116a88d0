"""
Storage abstractions.

- CredentialStore → the identity record (user.json)
- KeyStorage      → the token signing keypair
- SignalStorage   → supervisor signal, status, version and hostname files
"""

from nodemanager.storage.base import (
    SYSTEM_USER,
    CredentialStore,
    IdentityRecord,
    KeyNotFoundError,
    KeyStorage,
    RecordExistsError,
    RecordNotFoundError,
    SignalStorage,
    StorageProvider,
)
from nodemanager.storage.local import (
    FileCredentialStore,
    FileKeyStorage,
    FileSignalStorage,
    InMemoryCredentialStore,
    InMemoryKeyStorage,
    create_local_storage,
)

__all__ = [
    "SYSTEM_USER",
    "CredentialStore",
    "IdentityRecord",
    "KeyNotFoundError",
    "KeyStorage",
    "RecordExistsError",
    "RecordNotFoundError",
    "SignalStorage",
    "StorageProvider",
    "FileCredentialStore",
    "FileKeyStorage",
    "FileSignalStorage",
    "InMemoryCredentialStore",
    "InMemoryKeyStorage",
    "create_local_storage",
]
