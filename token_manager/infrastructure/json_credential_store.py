"""JSON file credential store.

This module persists one CredentialRecord per identity in a single JSON
file. Every read-modify-write is serialized by a per-file lock and every
write goes through a temporary file that is fsynced and atomically renamed
over the target, so readers never observe a partially written file.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, List, Optional, Union

from loguru import logger

from token_manager.core.constants import CORRUPT_FILE_SUFFIX
from token_manager.core.exceptions import StorageReadError, StorageWriteError
from token_manager.domain.models import CredentialRecord

_PATH_LOCKS: Dict[Path, threading.RLock] = {}
_PATH_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    """Process-wide lock shared by every store bound to the same file."""
    key = path.resolve()
    with _PATH_LOCKS_GUARD:
        lock = _PATH_LOCKS.get(key)
        if lock is None:
            lock = threading.RLock()
            _PATH_LOCKS[key] = lock
        return lock


class JsonCredentialStore:
    """Credential store backed by a JSON array on disk.

    Read failures (unreadable file, invalid JSON, malformed records) are
    logged at ERROR level and treated as an empty store: credentials can
    always be re-bootstrapped. Before a put() overwrites such a file, the
    unreadable copy is moved aside with a `.corrupt` suffix.

    Example:
        ```python
        store = JsonCredentialStore("data/tokens.json")
        store.put(record)
        current = store.get(record.identity_id)
        ```
    """

    def __init__(self, path: Union[str, Path]):
        """Initialize the store.

        Args:
            path: JSON file holding the records (created on first put)
        """
        self.path = Path(path)
        self._lock = _lock_for(self.path)
        self._ensure_data_directory()

    def _ensure_data_directory(self) -> None:
        directory = self.path.parent
        if directory.exists():
            return
        try:
            directory.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {directory}")
        except OSError as e:
            # put() reports the failure to its caller
            logger.warning(f"Could not create data directory {directory}: {e}")

    def get(self, identity_id: str) -> Optional[CredentialRecord]:
        """Retrieve the stored record for an identity.

        Args:
            identity_id: Identity (app) identifier

        Returns:
            CredentialRecord, or None when nothing is stored
        """
        for record in self.get_all():
            if record.identity_id == identity_id:
                return record
        return None

    def get_all(self) -> List[CredentialRecord]:
        """Retrieve every stored record in insertion order.

        Returns:
            List of CredentialRecord (empty if the file is unreadable)
        """
        with self._lock:
            try:
                return self._read_records()
            except StorageReadError as e:
                logger.error(f"Credential store unreadable, treating as empty: {e}")
                return []

    def put(self, record: CredentialRecord) -> None:
        """Insert or replace the record for record.identity_id.

        The full record set is on disk when this returns.

        Args:
            record: Record to persist

        Raises:
            StorageWriteError: If the file could not be written
        """
        with self._lock:
            try:
                records = self._read_records()
            except StorageReadError as e:
                logger.error(f"Credential store unreadable before write: {e}")
                self._quarantine_unreadable_file()
                records = []

            for index, existing in enumerate(records):
                if existing.identity_id == record.identity_id:
                    records[index] = record
                    break
            else:
                records.append(record)

            self._write_records(records)

        logger.debug(f"Stored credential for app {record.identity_id}")

    def _read_records(self) -> List[CredentialRecord]:
        """Load and validate the record set.

        Raises:
            StorageReadError: If the file cannot be read or parsed
        """
        if not self.path.exists():
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageReadError(
                "Failed to read credential store",
                path=str(self.path),
                details={"error": str(e)},
            ) from e

        if not isinstance(raw, list):
            raise StorageReadError(
                f"Credential store must hold a JSON array, got {type(raw).__name__}",
                path=str(self.path),
            )

        records: List[CredentialRecord] = []
        positions: Dict[str, int] = {}
        for index, item in enumerate(raw):
            try:
                record = CredentialRecord.from_dict(item)
            except (TypeError, ValueError) as e:
                raise StorageReadError(
                    f"Malformed credential record at position {index}",
                    path=str(self.path),
                    details={"error": str(e)},
                ) from e

            # Last write wins if an older file holds duplicates
            if record.identity_id in positions:
                records[positions[record.identity_id]] = record
            else:
                positions[record.identity_id] = len(records)
                records.append(record)

        return records

    def _write_records(self, records: List[CredentialRecord]) -> None:
        """Atomically replace the file with the given record set.

        Raises:
            StorageWriteError: If any step of the write fails
        """
        payload = [record.to_dict() for record in records]
        temp_path = None

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                dir=str(self.path.parent),
                prefix=f".{self.path.name}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.path)
            temp_path = None
        except OSError as e:
            raise StorageWriteError(
                "Failed to write credential store",
                path=str(self.path),
                details={"error": str(e)},
            ) from e
        finally:
            if temp_path is not None and os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError as cleanup_error:
                    logger.warning(f"Could not remove temporary file {temp_path}: {cleanup_error}")

        logger.debug(f"Credential store saved ({len(records)} record(s))")

    def _quarantine_unreadable_file(self) -> None:
        """Move an unreadable store file aside instead of overwriting it.

        Raises:
            StorageWriteError: If the file cannot be moved
        """
        if not self.path.exists():
            return

        target = self.path.with_name(self.path.name + CORRUPT_FILE_SUFFIX)
        try:
            os.replace(self.path, target)
        except OSError as e:
            raise StorageWriteError(
                "Unreadable credential store could not be moved aside",
                path=str(self.path),
                details={"error": str(e)},
            ) from e

        logger.warning(f"Unreadable credential store moved to {target}")
