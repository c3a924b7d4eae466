"""
Abstract Storage Interface

Both backends persist the same unit - one whole AppData - so they share
one small repository interface:
1. LocalSnapshotStore implements it directly (guest data on disk)
2. RemoteDocumentStore hands out one repository per signed-in user

The interface is intentionally simple - we're not building a full ORM.
Just "save everything" and "load everything".
"""

from abc import ABC, abstractmethod
from typing import Optional

from rental_manager.models.app_data import AppData


class AppDataRepository(ABC):
    """
    Abstract interface for whole-dataset persistence.

    Any storage implementation (local file, Firestore, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def save(self, data: AppData) -> None:
        """
        Persist the full dataset, replacing what was stored before.

        Args:
            data: The dataset to save

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def load(self) -> Optional[AppData]:
        """
        Load the full dataset.

        Returns:
            The stored dataset, or None if nothing is stored

        Raises:
            StorageError: If the store could not be read
        """
        pass


class RemoteDocumentStore(ABC):
    """
    Abstract interface for the remote multi-device store.

    One document per user, keyed by the identity provider's opaque user id.
    A missing document is reported as None ("no data"), never as an error,
    so callers can tell a new account from a transient failure.
    """

    @abstractmethod
    async def save(self, user_id: str, data: AppData) -> None:
        """
        Write the user's document.

        Raises:
            RemoteStoreError: If the write fails
        """
        pass

    @abstractmethod
    async def load(self, user_id: str) -> Optional[AppData]:
        """
        Read the user's document.

        Returns:
            The dataset, or None if the user has no document

        Raises:
            RemoteStoreError: If the read fails or the document is undecodable
        """
        pass

    @abstractmethod
    async def delete(self, user_id: str) -> None:
        """
        Delete the user's document. Deleting a missing document succeeds.

        Raises:
            RemoteStoreError: If the delete fails
        """
        pass

    def for_user(self, user_id: str) -> AppDataRepository:
        """A repository bound to one user's document."""
        return UserDocumentRepository(self, user_id)


class UserDocumentRepository(AppDataRepository):
    """AppDataRepository view of one user's remote document."""

    def __init__(self, store: RemoteDocumentStore, user_id: str):
        self._store = store
        self.user_id = user_id

    async def save(self, data: AppData) -> None:
        await self._store.save(self.user_id, data)

    async def load(self) -> Optional[AppData]:
        return await self._store.load(self.user_id)


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class SnapshotDecodeError(StorageError):
    """Stored or imported bytes are not a valid dataset."""
    pass


class RemoteStoreError(StorageError):
    """The remote document store failed (network, permission, auth...)."""
    pass


class ConnectionError(RemoteStoreError):
    """Could not connect to the remote backend."""
    pass
