"""
Local Snapshot Store

The guest dataset lives in one JSON document on disk:

    {"properties": [...], "tenants": [...], "incomes": [...],
     "expenses": [...], "transactionCategories": [...],
     "maintenanceRequests": [...], "appointments": [...]}

Writes go to a temporary file in the same directory which then replaces
the snapshot with os.replace, so a crash mid-write leaves the previous
snapshot intact.

Reading never fails the caller: a missing or undecodable snapshot yields
an empty dataset with the default categories, and the problem is logged.
"""

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Optional

import structlog

from rental_manager.config import LocalStoreSettings, get_settings
from rental_manager.models.app_data import AppData
from rental_manager.services.storage.interface import (
    AppDataRepository,
    SnapshotDecodeError,
    StorageError,
)


logger = structlog.get_logger(__name__)


class LocalSnapshotStore(AppDataRepository):
    """File-backed implementation of AppDataRepository."""

    def __init__(
        self,
        path: Optional[Path] = None,
        settings: Optional[LocalStoreSettings] = None,
    ):
        if path is None:
            path = (settings or get_settings().local_store).snapshot_path
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    # -------------------------------------------------------------------------
    # AppDataRepository
    # -------------------------------------------------------------------------

    async def save(self, data: AppData) -> None:
        """Atomically replace the snapshot with `data`."""
        blob = data.to_json_bytes()
        try:
            await asyncio.to_thread(self._write_atomic, blob)
        except OSError as e:
            raise StorageError(f"Failed to write snapshot {self._path}: {e}") from e
        logger.debug("snapshot_saved", path=str(self._path), size_bytes=len(blob))

    async def load(self) -> AppData:
        """
        Load the snapshot.

        Missing snapshot: empty dataset with default categories.
        Unreadable or undecodable snapshot: same, and the error is logged.
        """
        blob = await self.export_blob()
        if blob is None:
            logger.info("snapshot_missing", path=str(self._path))
            return AppData.empty()

        try:
            data = self.decode(blob)
        except SnapshotDecodeError as e:
            logger.error("snapshot_decode_failed", path=str(self._path), error=str(e))
            return AppData.empty()

        data.ensure_default_categories()
        return data

    # -------------------------------------------------------------------------
    # Export / import
    # -------------------------------------------------------------------------

    async def export_blob(self) -> Optional[bytes]:
        """Raw snapshot bytes, or None if there is no readable snapshot."""
        try:
            return await asyncio.to_thread(self._path.read_bytes)
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error("snapshot_read_failed", path=str(self._path), error=str(e))
            return None

    async def import_blob(self, blob: bytes) -> AppData:
        """
        Decode a backup and make it the snapshot.

        Returns:
            The imported dataset

        Raises:
            SnapshotDecodeError: If the blob is not a valid dataset
                (the existing snapshot is left untouched)
            StorageError: If the snapshot could not be written
        """
        data = self.decode(blob)
        data.ensure_default_categories()
        await self.save(data)
        return data

    @staticmethod
    def decode(blob: bytes) -> AppData:
        try:
            return AppData.from_json_bytes(blob)
        except ValueError as e:
            raise SnapshotDecodeError(f"Invalid snapshot: {e}") from e

    # -------------------------------------------------------------------------
    # File handling
    # -------------------------------------------------------------------------

    def _write_atomic(self, blob: bytes) -> None:
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=directory,
            prefix=f".{self._path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(blob)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
