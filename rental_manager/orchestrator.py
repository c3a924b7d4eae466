"""
Sync Coordinator for Rental Manager

This module ties the dataset to its two stores and defines the
session flows:
1. Guest (signed out): local snapshot only
2. Session resume / sign-in: remote document replaces the dataset
3. Sign-up: the guest dataset is migrated to the new account
4. Sign-out / account deletion: back to the local snapshot

DESIGN DECISION: One asyncio.Lock guards every session transition.
While it is held:
- auth-state callbacks from the identity provider are ignored, so a
  "signed in" push arriving mid sign-up cannot load the new (empty)
  remote document over the guest data being migrated
- saves go to the local snapshot only

The local snapshot is never cleared by a failed migration.
"""

import asyncio
from enum import Enum
from typing import Optional
from uuid import UUID

import structlog

from rental_manager.audit import AuditLogger, configure_logging, create_correlation_id
from rental_manager.config import get_settings
from rental_manager.ledger import LedgerEngine
from rental_manager.manager import RentalManager
from rental_manager.models.app_data import AppData
from rental_manager.models.audit import AuditEventBuilder, dataset_counts
from rental_manager.queries import PortfolioQueries
from rental_manager.services.identity import AuthenticationError, IdentityProvider
from rental_manager.services.notifications import NotificationScheduler, ReminderPlanner
from rental_manager.services.storage import (
    FirestoreAppDataStore,
    FirestoreClient,
    LocalSnapshotStore,
    AppDataRepository,
    RemoteDocumentStore,
    RemoteStoreError,
    StorageError,
)


logger = structlog.get_logger(__name__)


class AuthState(str, Enum):
    UNKNOWN = "unknown"
    SIGNED_OUT = "signed_out"
    SIGNED_IN = "signed_in"


class MigrationError(Exception):
    """
    Sign-up migration failed. The guest dataset is untouched.

    account_created tells the caller whether the account exists anyway
    (the snapshot write failed after sign-up succeeded).
    """

    def __init__(self, message: str, account_created: bool, user_id: Optional[str] = None):
        self.account_created = account_created
        self.user_id = user_id
        super().__init__(message)


class SyncCoordinator:
    """
    Owns the auth state machine and decides which store feeds the dataset.

    States: unknown -> signed_out / signed_in.
    """

    def __init__(
        self,
        local_store: LocalSnapshotStore,
        remote_store: RemoteDocumentStore,
        identity: IdentityProvider,
        ledger: Optional[LedgerEngine] = None,
        reminders: Optional[ReminderPlanner] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._local = local_store
        self._remote = remote_store
        self._identity = identity
        self._audit = audit_logger or AuditLogger()
        self._ledger = ledger or LedgerEngine()
        self.manager = RentalManager(self._ledger, on_change=self.persist, reminders=reminders)

        self._lock = asyncio.Lock()
        self._state = AuthState.UNKNOWN
        self._user_id: Optional[str] = None
        self._migrating = False
        # Document the dataset was loaded from, set once that load succeeded
        self._account: Optional[AppDataRepository] = None
        # Account created by a sign-up whose migration write failed
        self._orphaned_user_id: Optional[str] = None

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def is_migrating(self) -> bool:
        return self._migrating

    @property
    def data(self) -> AppData:
        return self.manager.data

    async def start(self) -> None:
        """Initial load for whoever the identity provider reports as signed in."""
        await self.handle_auth_state_change(self._identity.current_user_id)

    # -------------------------------------------------------------------------
    # Auth-state driven loading
    # -------------------------------------------------------------------------

    async def handle_auth_state_change(self, user_id: Optional[str]) -> None:
        """
        Identity provider callback.

        Ignored while a session transition holds the lock, and when the
        dataset already belongs to `user_id`.

        Raises:
            RemoteStoreError: If resuming a session could not read the
                remote document (the dataset is left empty)
        """
        if self._lock.locked():
            self._audit.log(AuditEventBuilder.auto_load_suppressed(user_id))
            return

        if user_id is not None and user_id == self._orphaned_user_id:
            self._audit.log(AuditEventBuilder.auto_load_suppressed(user_id))
            return

        async with self._lock:
            if user_id is None:
                if self._state == AuthState.SIGNED_OUT:
                    return
                await self._enter_guest_mode()
                self._audit.log(AuditEventBuilder.guest_data_loaded(dataset_counts(self.data)))
                return

            if self._state == AuthState.SIGNED_IN and user_id == self._user_id and self._account is not None:
                return

            correlation_id = create_correlation_id()
            found = await self._enter_account(user_id, correlation_id)
            self._audit.log(AuditEventBuilder.session_resumed(user_id, found, correlation_id))

    # -------------------------------------------------------------------------
    # User-initiated transitions
    # -------------------------------------------------------------------------

    async def sign_in(self, email: str, password: str) -> str:
        """
        Sign in and replace the dataset with the account's remote document.

        The guest data stays in the local snapshot.

        Raises:
            AuthenticationError: If the identity provider rejects the sign-in
            RemoteStoreError: If the remote document could not be read
        """
        correlation_id = create_correlation_id()
        async with self._lock:
            user_id = await self._identity.sign_in(email, password)
            self._orphaned_user_id = None
            found = await self._enter_account(user_id, correlation_id)
            self._audit.log(AuditEventBuilder.signed_in(user_id, found, correlation_id))
        return user_id

    async def sign_up(self, email: str, password: str) -> str:
        """
        Create an account and migrate the current guest dataset into it.

        The dataset is captured before the account exists and written
        straight to the new user's remote document.

        Raises:
            MigrationError: If account creation or the snapshot write failed.
                The in-memory dataset and the local snapshot are unchanged.
        """
        correlation_id = create_correlation_id()
        async with self._lock:
            self._migrating = True
            try:
                snapshot = self.manager.data.model_copy(deep=True)
                self._audit.log(
                    AuditEventBuilder.migration_started(dataset_counts(snapshot), correlation_id)
                )

                try:
                    user_id = await self._identity.sign_up(email, password)
                except AuthenticationError as e:
                    self._audit.log_migration_failed(None, str(e), False, correlation_id)
                    raise MigrationError(f"Account creation failed: {e}", account_created=False) from e

                account = self._remote.for_user(user_id)
                try:
                    await account.save(snapshot)
                except RemoteStoreError as e:
                    self._orphaned_user_id = user_id
                    self._audit.log_migration_failed(user_id, str(e), True, correlation_id)
                    raise MigrationError(
                        f"Account created but data could not be uploaded: {e}",
                        account_created=True,
                        user_id=user_id,
                    ) from e

                self._state = AuthState.SIGNED_IN
                self._user_id = user_id
                self._account = account
                self._audit.log(AuditEventBuilder.migration_completed(user_id, correlation_id))
            finally:
                self._migrating = False

        if self.manager.data != snapshot:
            # Changed while the snapshot was uploading
            await self.persist()
        return user_id

    async def sign_out(self) -> None:
        """
        Sign out and reload the local snapshot.

        Raises:
            AuthenticationError: If the identity provider fails to sign out
        """
        correlation_id = create_correlation_id()
        async with self._lock:
            user_id = self._user_id
            await self._identity.sign_out()
            self._orphaned_user_id = None
            await self._enter_guest_mode()
            self._audit.log(AuditEventBuilder.signed_out(user_id, correlation_id))

    async def delete_account(self) -> None:
        """
        Delete the remote document, then the identity record, then reload
        the local snapshot.

        Raises:
            AuthenticationError: If nobody is signed in or the identity
                record could not be deleted
            RemoteStoreError: If the remote document could not be deleted
                (the account is kept)
        """
        correlation_id = create_correlation_id()
        async with self._lock:
            user_id = self._user_id
            if self._state != AuthState.SIGNED_IN or user_id is None:
                raise AuthenticationError("No signed-in account to delete")

            await self._remote.delete(user_id)
            await self._identity.delete_account()
            await self._enter_guest_mode()
            self._audit.log(AuditEventBuilder.account_deleted(user_id, correlation_id))

    async def app_became_active(self) -> int:
        """Recalculate every balance and save. Returns the tenant count."""
        count = await self.manager.refresh_balances()
        self._audit.log(AuditEventBuilder.balances_refreshed(count))
        return count

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    async def persist(self) -> None:
        """
        Save the dataset: local snapshot always, remote document when
        signed in. Failures are logged, never raised.
        """
        data = self.manager.data
        try:
            await self._local.save(data)
        except StorageError as e:
            self._audit.log_save_failed("local", str(e))

        if self._lock.locked() or not self._can_mirror():
            return

        try:
            await self._account.save(data)
        except RemoteStoreError as e:
            self._audit.log_save_failed("remote", str(e), self._user_id)

    async def export_data(self) -> Optional[bytes]:
        """Raw local snapshot bytes, or None if there is no snapshot."""
        blob = await self._local.export_blob()
        if blob is not None:
            self._audit.log(AuditEventBuilder.data_exported(len(blob)))
        return blob

    async def import_data(self, blob: bytes) -> AppData:
        """
        Replace the whole dataset with a backup. Irreversible.

        Raises:
            SnapshotDecodeError: If the backup is invalid (nothing is changed)
            StorageError: If the local snapshot could not be written
        """
        data = await self._local.import_blob(blob)
        self.manager.replace_data(data)
        await self.persist()
        self._audit.log(AuditEventBuilder.data_imported(dataset_counts(data)))
        return data

    # -------------------------------------------------------------------------
    # Internals (lock held)
    # -------------------------------------------------------------------------

    def _can_mirror(self) -> bool:
        return (
            self._state == AuthState.SIGNED_IN
            and self._user_id is not None
            and self._account is not None
        )

    async def _enter_guest_mode(self) -> None:
        self._state = AuthState.SIGNED_OUT
        self._user_id = None
        self._account = None
        self.manager.clear()
        self.manager.replace_data(await self._local.load())

    async def _enter_account(self, user_id: str, correlation_id: UUID) -> bool:
        """Load the user's document into a cleared dataset. Returns whether one existed."""
        self._state = AuthState.SIGNED_IN
        self._user_id = user_id
        self._account = None
        self.manager.clear()

        account = self._remote.for_user(user_id)
        try:
            data = await account.load()
        except RemoteStoreError as e:
            self._audit.log_remote_load_failed(user_id, str(e), correlation_id)
            raise

        self.manager.replace_data(data if data is not None else AppData.empty())
        self._account = account
        logger.info("remote_dataset_loaded", user_id=user_id, found_data=data is not None)
        return data is not None


def create_app_components(
    identity: IdentityProvider,
    scheduler: Optional[NotificationScheduler] = None,
    local_store: Optional[LocalSnapshotStore] = None,
    remote_store: Optional[RemoteDocumentStore] = None,
) -> tuple[SyncCoordinator, PortfolioQueries]:
    """
    Factory function to create all application components.

    Args:
        identity: The identity provider; its state changes drive loading.
        scheduler: Reminder delivery. Reminders are only logged when None.
        local_store / remote_store: Override the configured stores
            (the remote default is Firestore, connected on first use).

    Returns:
        (coordinator, portfolio_queries). Await coordinator.start() to
        perform the initial load.
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    ledger = LedgerEngine(settings=settings.ledger)
    reminders = ReminderPlanner(scheduler, clock=ledger.clock, settings=settings.reminders)
    audit_logger = AuditLogger(history_size=settings.app.audit_history_size)

    coordinator = SyncCoordinator(
        local_store=local_store or LocalSnapshotStore(settings=settings.local_store),
        remote_store=remote_store or FirestoreAppDataStore(FirestoreClient(settings.firebase)),
        identity=identity,
        ledger=ledger,
        reminders=reminders,
        audit_logger=audit_logger,
    )
    identity.add_state_listener(coordinator.handle_auth_state_change)

    return coordinator, PortfolioQueries(ledger)
