"""
Registration lifecycle.

UNREGISTERED -> REGISTERED happens exactly once, when the first identity
record is written. IdentityState is the single authority for that
transition: it caches the answer to "is the node registered?" and
serializes the check-then-write.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum

from nodemanager.storage.base import (
    CredentialStore,
    IdentityRecord,
    RecordExistsError,
)

logger = logging.getLogger(__name__)


class Registration(str, Enum):
    UNREGISTERED = "unregistered"
    REGISTERED = "registered"


class AlreadyRegisteredError(Exception):
    """Registration attempted after the identity record exists."""
    pass


class IdentityState:
    """
    Registration state backed by the credential store.

    REGISTERED is cached forever once observed: the record is never
    deleted. UNREGISTERED is re-read from the store so a record created
    by another process is picked up.
    """

    def __init__(self, credentials: CredentialStore):
        self.credentials = credentials
        self._registered = False
        self._lock = asyncio.Lock()

    async def current(self) -> Registration:
        if not self._registered:
            self._registered = await self.credentials.exists()
        return Registration.REGISTERED if self._registered else Registration.UNREGISTERED

    async def is_registered(self) -> bool:
        return await self.current() == Registration.REGISTERED

    async def register(self, candidate: IdentityRecord) -> IdentityRecord:
        """
        Persist the first identity record.

        Exactly one concurrent caller wins; every other caller gets
        AlreadyRegisteredError. The store's exclusive create covers
        writers outside this process.
        """
        async with self._lock:
            if await self.is_registered():
                raise AlreadyRegisteredError("User already exists")
            try:
                await self.credentials.create(candidate)
            except RecordExistsError:
                self._registered = True
                raise AlreadyRegisteredError("User already exists")
            self._registered = True

        logger.info("Node registered")
        return candidate

    async def change_password(self, password_hash: str) -> None:
        """Replace the stored hash, keeping the rest of the record."""
        async with self._lock:
            record = await self.credentials.read()
            await self.credentials.update(record.model_copy(update={"password_hash": password_hash}))
        logger.info("Password changed")
