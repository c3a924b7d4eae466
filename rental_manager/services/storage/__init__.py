"""Storage package: whole-dataset repositories for the local and remote stores."""

from rental_manager.services.storage.interface import (
    AppDataRepository,
    ConnectionError,
    RemoteDocumentStore,
    RemoteStoreError,
    SnapshotDecodeError,
    StorageError,
    UserDocumentRepository,
)
from rental_manager.services.storage.local_snapshot import LocalSnapshotStore
from rental_manager.services.storage.firestore import FirestoreAppDataStore, FirestoreClient

__all__ = [
    "AppDataRepository",
    "ConnectionError",
    "FirestoreAppDataStore",
    "FirestoreClient",
    "LocalSnapshotStore",
    "RemoteDocumentStore",
    "RemoteStoreError",
    "SnapshotDecodeError",
    "StorageError",
    "UserDocumentRepository",
]
