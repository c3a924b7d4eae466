"""
Cloud Firestore Remote Store

Signed-in users keep their dataset in one Firestore document:

    users/{uid} -> same schema as the local snapshot

TRADEOFFS:
- The whole dataset is rewritten on every save (fine for one landlord's
  portfolio, not for thousands of tenants)
- No transactions; concurrent devices resolve by last writer wins

The firebase-admin SDK is synchronous; connection setup (with its retry
backoff) and document calls run in a worker thread so the event loop
owning the dataset is never blocked.
"""

import asyncio
from typing import Any, Optional

import firebase_admin
import structlog
from firebase_admin import credentials, firestore
from tenacity import retry, stop_after_attempt, wait_exponential

from rental_manager.config import FirebaseSettings, get_settings
from rental_manager.models.app_data import AppData
from rental_manager.services.storage.interface import (
    ConnectionError,
    RemoteDocumentStore,
    RemoteStoreError,
)


logger = structlog.get_logger(__name__)


class FirestoreClient:
    """
    Low-level Firestore client wrapper.

    Handles Firebase app initialization and provides retry logic for
    establishing the connection.
    """

    def __init__(self, settings: Optional[FirebaseSettings] = None):
        self._client: Optional[Any] = None
        self._settings = settings or get_settings().firebase

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> Any:
        """
        Establish the Firestore client.

        Reuses the default Firebase app if one is already initialized.
        """
        if self._client is None:
            try:
                try:
                    app = firebase_admin.get_app()
                except ValueError:
                    cred = (
                        credentials.Certificate(self._settings.credentials_path)
                        if self._settings.credentials_path
                        else None
                    )
                    options = (
                        {"projectId": self._settings.project_id}
                        if self._settings.project_id
                        else None
                    )
                    app = firebase_admin.initialize_app(cred, options)
                self._client = firestore.client(app)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Firebase credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Firestore: {e}")

        return self._client

    def user_document(self, user_id: str) -> Any:
        """DocumentReference of users/{user_id}."""
        if not user_id:
            raise RemoteStoreError("A user id is required")
        return self.connect().collection(self._settings.users_collection).document(user_id)


class FirestoreAppDataStore(RemoteDocumentStore):
    """
    Firestore implementation of the remote document store.

    Datasets are stored in their JSON form (camelCase keys, ISO-8601 date
    strings) so local and remote documents are interchangeable.
    """

    def __init__(self, client: Optional[FirestoreClient] = None):
        self._client = client or FirestoreClient()

    async def save(self, user_id: str, data: AppData) -> None:
        document = data.to_document()
        try:
            ref = await asyncio.to_thread(self._client.user_document, user_id)
            await asyncio.to_thread(ref.set, document)
        except RemoteStoreError:
            raise
        except Exception as e:
            raise RemoteStoreError(f"Failed to save data for user {user_id}: {e}") from e
        logger.debug("remote_document_saved", user_id=user_id)

    async def load(self, user_id: str) -> Optional[AppData]:
        try:
            ref = await asyncio.to_thread(self._client.user_document, user_id)
            snapshot = await asyncio.to_thread(ref.get)
        except RemoteStoreError:
            raise
        except Exception as e:
            raise RemoteStoreError(f"Failed to load data for user {user_id}: {e}") from e

        if not snapshot.exists:
            logger.info("remote_document_missing", user_id=user_id)
            return None

        try:
            return AppData.from_document(snapshot.to_dict() or {})
        except ValueError as e:
            raise RemoteStoreError(f"Remote document for user {user_id} is invalid: {e}") from e

    async def delete(self, user_id: str) -> None:
        try:
            ref = await asyncio.to_thread(self._client.user_document, user_id)
            await asyncio.to_thread(ref.delete)
        except RemoteStoreError:
            raise
        except Exception as e:
            raise RemoteStoreError(f"Failed to delete data for user {user_id}: {e}") from e
        logger.info("remote_document_deleted", user_id=user_id)
