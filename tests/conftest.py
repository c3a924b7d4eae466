"""
Shared fixtures.

No real Firebase calls in tests: the remote store, identity provider
and notification scheduler are in-memory fakes, and time is frozen.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

import pytest

from rental_manager.audit import AuditLogger
from rental_manager.config import LedgerSettings, ReminderSettings
from rental_manager.ledger import Clock, LedgerEngine
from rental_manager.manager import RentalManager
from rental_manager.models import AppData
from rental_manager.orchestrator import SyncCoordinator
from rental_manager.services.identity import (
    AuthenticationError,
    AuthStateListener,
    IdentityProvider,
)
from rental_manager.services.notifications import (
    NotificationScheduler,
    ReminderKind,
    ReminderPlanner,
)
from rental_manager.services.storage import (
    LocalSnapshotStore,
    RemoteDocumentStore,
    RemoteStoreError,
)


NOW = datetime(2024, 6, 15, 10, 0)


class FixedClock(Clock):
    def __init__(self, now: datetime = NOW):
        self._now = now

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now


class FakeRemoteStore(RemoteDocumentStore):
    """Keeps serialized documents in a dict, like Firestore would."""

    def __init__(self):
        self.documents: dict[str, dict] = {}
        self.fail_save = False
        self.fail_load = False
        self.save_calls = 0

    async def save(self, user_id: str, data: AppData) -> None:
        self.save_calls += 1
        if self.fail_save:
            raise RemoteStoreError("permission denied")
        self.documents[user_id] = data.to_document()

    async def load(self, user_id: str) -> Optional[AppData]:
        if self.fail_load:
            raise RemoteStoreError("network unreachable")
        document = self.documents.get(user_id)
        if document is None:
            return None
        return AppData.from_document(document)

    async def delete(self, user_id: str) -> None:
        self.documents.pop(user_id, None)


class FakeIdentityProvider(IdentityProvider):
    """Accounts in a dict; listeners are awaited inline on every change."""

    def __init__(self, current_user_id: Optional[str] = None):
        self.accounts: dict[str, tuple[str, str]] = {}
        self._current = current_user_id
        self._listeners: list[AuthStateListener] = []
        self.fail_sign_up = False

    def add_account(self, email: str, password: str, user_id: str) -> None:
        self.accounts[email] = (password, user_id)

    async def sign_in(self, email: str, password: str) -> str:
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            raise AuthenticationError("Invalid email or password")
        await self._set_current(account[1])
        return account[1]

    async def sign_up(self, email: str, password: str) -> str:
        if self.fail_sign_up or email in self.accounts:
            raise AuthenticationError("Account could not be created")
        user_id = f"user-{len(self.accounts) + 1}"
        self.accounts[email] = (password, user_id)
        await self._set_current(user_id)
        return user_id

    async def sign_out(self) -> None:
        await self._set_current(None)

    async def delete_account(self) -> None:
        if self._current is None:
            raise AuthenticationError("Nobody is signed in")
        self.accounts = {e: a for e, a in self.accounts.items() if a[1] != self._current}
        await self._set_current(None)

    @property
    def current_user_id(self) -> Optional[str]:
        return self._current

    def add_state_listener(self, listener: AuthStateListener) -> None:
        self._listeners.append(listener)

    async def _set_current(self, user_id: Optional[str]) -> None:
        self._current = user_id
        for listener in self._listeners:
            await listener(user_id)


class RecordingScheduler(NotificationScheduler):
    def __init__(self):
        self.scheduled: dict[tuple[ReminderKind, UUID], datetime] = {}
        self.cancelled: list[tuple[ReminderKind, UUID]] = []

    def schedule(self, kind: ReminderKind, subject_id: UUID, fire_at: datetime) -> None:
        self.scheduled[(kind, subject_id)] = fire_at

    def cancel(self, kind: ReminderKind, subject_id: UUID) -> None:
        self.scheduled.pop((kind, subject_id), None)
        self.cancelled.append((kind, subject_id))


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def ledger(clock) -> LedgerEngine:
    return LedgerEngine(clock=clock, settings=LedgerSettings())


@pytest.fixture
def scheduler() -> RecordingScheduler:
    return RecordingScheduler()


@pytest.fixture
def reminders(scheduler, clock) -> ReminderPlanner:
    return ReminderPlanner(scheduler, clock=clock, settings=ReminderSettings())


@pytest.fixture
def manager(ledger, reminders) -> RentalManager:
    return RentalManager(ledger, reminders=reminders)


@pytest.fixture
def local_store(tmp_path) -> LocalSnapshotStore:
    return LocalSnapshotStore(tmp_path / "rental_data.json")


@pytest.fixture
def remote_store() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture
def identity() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def audit_logger() -> AuditLogger:
    return AuditLogger(history_size=100)


@pytest.fixture
def coordinator(local_store, remote_store, identity, ledger, reminders, audit_logger) -> SyncCoordinator:
    coordinator = SyncCoordinator(
        local_store=local_store,
        remote_store=remote_store,
        identity=identity,
        ledger=ledger,
        reminders=reminders,
        audit_logger=audit_logger,
    )
    identity.add_state_listener(coordinator.handle_auth_state_change)
    return coordinator
