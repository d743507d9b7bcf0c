"""Backup store and the transactional resolution attempt built on it."""

from __future__ import annotations

import json
import logging
import os
import shutil
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import ClassVar, Dict, List, Optional

from constants import Constants
from errors import ResolutionAttemptError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackupRecord:
    """One entry of the backup metadata file."""
    id: str
    timestamp: str
    original_path: str
    backup_path: str
    description: str
    project_path: str

    @property
    def original_file(self) -> str:
        return os.path.join(self.project_path, self.original_path)

    def to_json(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "originalPath": self.original_path,
            "backupPath": self.backup_path,
            "description": self.description,
            "projectPath": self.project_path,
        }

    @classmethod
    def from_json(cls, data: Dict[str, str]) -> "BackupRecord":
        return cls(
            id=str(data["id"]),
            timestamp=data.get("timestamp", ""),
            original_path=data["originalPath"],
            backup_path=data["backupPath"],
            description=data.get("description", ""),
            project_path=data["projectPath"],
        )


class BackupStore:
    """Append-only list of file backups kept under ``<project>/.flutterfix/backups``."""

    def __init__(self, project_root: str):
        self.project_root = os.path.abspath(project_root)
        self.directory = os.path.join(self.project_root, Constants.BACKUP_DIR)
        self.metadata_path = os.path.join(self.directory, Constants.BACKUP_METADATA_FILE)

    def _load(self) -> List[Dict[str, str]]:
        if not os.path.isfile(self.metadata_path):
            return []
        with open(self.metadata_path, "r", encoding="utf-8") as handle:
            content = handle.read()
        if not content.strip():
            return []
        data = json.loads(content)
        return data if isinstance(data, list) else []

    def _save(self, entries: List[Dict[str, str]]) -> None:
        os.makedirs(self.directory, exist_ok=True)
        with open(self.metadata_path, "w", encoding="utf-8") as handle:
            json.dump(entries, handle, indent=2)

    def create(self, file_path: str, description: str) -> BackupRecord:
        """Copy ``file_path`` into the store and append its record."""
        os.makedirs(self.directory, exist_ok=True)
        entries = self._load()
        taken = {entry.get("id") for entry in entries}

        stamp = int(time.time() * 1000)
        while str(stamp) in taken:
            stamp += 1
        backup_id = str(stamp)

        backup_path = os.path.join(self.directory, f"{os.path.basename(file_path)}.backup.{backup_id}")
        shutil.copyfile(file_path, backup_path)

        record = BackupRecord(
            id=backup_id,
            timestamp=datetime.fromtimestamp(stamp / 1000).isoformat(),
            original_path=os.path.relpath(os.path.abspath(file_path), self.project_root),
            backup_path=backup_path,
            description=description,
            project_path=self.project_root,
        )
        entries.append(record.to_json())
        self._save(entries)
        logger.debug("Created backup %s of %s", backup_id, record.original_path)
        return record

    def list(self) -> List[BackupRecord]:
        """All records, newest first."""
        records = [BackupRecord.from_json(entry) for entry in self._load()]
        return sorted(records, key=lambda r: r.id, reverse=True)

    def latest(self) -> Optional[BackupRecord]:
        records = self.list()
        return records[0] if records else None

    def get(self, backup_id: str) -> Optional[BackupRecord]:
        for record in self.list():
            if record.id == backup_id:
                return record
        return None

    def restore(self, record: BackupRecord) -> None:
        """Copy the backup over the original file, byte for byte."""
        target = record.original_file
        os.makedirs(os.path.dirname(target), exist_ok=True)
        shutil.copyfile(record.backup_path, target)
        logger.info("Restored %s from backup %s", record.original_path, record.id)

    def delete(self, record: BackupRecord) -> None:
        if os.path.isfile(record.backup_path):
            os.remove(record.backup_path)
        self._save([entry for entry in self._load() if entry.get("id") != record.id])

    def clear(self) -> int:
        count = len(self._load())
        if os.path.isdir(self.directory):
            shutil.rmtree(self.directory)
        return count


class AttemptState(Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class ResolutionAttempt:
    """Sole owner of one manifest backup for the duration of a change.

    ``begin`` snapshots the manifest; ``commit`` discards the snapshot and
    ``rollback`` restores it byte-for-byte. Used as a context manager, an
    attempt that is left by an exception, or without an explicit outcome, is
    rolled back. Only one attempt per manifest can be active at a time.
    """

    _active: ClassVar[Dict[str, "ResolutionAttempt"]] = {}
    _lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, manifest_path: str, store: BackupStore, description: str,
                 keep_backup: bool = False):
        self.manifest_path = os.path.abspath(manifest_path)
        self.store = store
        self.description = description
        self.keep_backup = keep_backup
        self.state = AttemptState.PENDING
        self.record: Optional[BackupRecord] = None

    @classmethod
    def active_for(cls, manifest_path: str) -> Optional["ResolutionAttempt"]:
        return cls._active.get(os.path.abspath(manifest_path))

    def begin(self) -> BackupRecord:
        if self.state is not AttemptState.PENDING:
            raise ResolutionAttemptError(f"Attempt already {self.state.value}")
        with self._lock:
            if self.manifest_path in self._active:
                raise ResolutionAttemptError(
                    f"Another resolution attempt is active for {self.manifest_path}"
                )
            self.record = self.store.create(self.manifest_path, self.description)
            self._active[self.manifest_path] = self
        self.state = AttemptState.ACTIVE
        return self.record

    def _finish(self, state: AttemptState) -> None:
        self.state = state
        with self._lock:
            self._active.pop(self.manifest_path, None)

    def _require_active(self) -> BackupRecord:
        if self.state is not AttemptState.ACTIVE or self.record is None:
            raise ResolutionAttemptError(f"Attempt is {self.state.value}, not active")
        return self.record

    def commit(self) -> None:
        record = self._require_active()
        if not self.keep_backup:
            self.store.delete(record)
        self._finish(AttemptState.COMMITTED)
        logger.debug("Committed attempt %s", record.id)

    def rollback(self) -> None:
        record = self._require_active()
        try:
            self.store.restore(record)
            self.store.delete(record)
        finally:
            self._finish(AttemptState.ROLLED_BACK)

    def __enter__(self) -> "ResolutionAttempt":
        self.begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self.state is AttemptState.ACTIVE:
            if exc_type is not None:
                logger.warning("Rolling back %s after error: %s", os.path.basename(self.manifest_path), exc)
            self.rollback()
        return False
