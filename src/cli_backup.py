"""CLI entry points for listing and restoring manifest backups."""

from __future__ import annotations

import logging
import os
from typing import Any

from constants import ExitCodes
from resolution.attempt import BackupStore

logger = logging.getLogger(__name__)


def _store(args: Any) -> BackupStore:
    return BackupStore(os.path.abspath(getattr(args, "PROJECT_DIR", ".") or "."))


def run_backups(args: Any) -> ExitCodes:
    """List backups newest first, or clear them with --clear."""
    store = _store(args)
    if getattr(args, "CLEAR", False):
        count = store.clear()
        print(f"Deleted {count} backup(s)")
        return ExitCodes.SUCCESS

    records = store.list()
    if not records:
        print("No backups found")
        return ExitCodes.SUCCESS
    for record in records:
        print(f"{record.id}  {record.timestamp}  {record.original_path}  {record.description}")
    return ExitCodes.SUCCESS


def run_rollback(args: Any) -> ExitCodes:
    """Restore the requested (or latest) backup over its original file."""
    store = _store(args)
    backup_id = getattr(args, "BACKUP_ID", None)
    record = store.get(backup_id) if backup_id else store.latest()
    if record is None:
        if backup_id:
            logger.error("Backup %s not found", backup_id)
        else:
            logger.error("No backups found in %s", store.directory)
        return ExitCodes.FILE_ERROR

    try:
        store.restore(record)
    except OSError as exc:
        logger.error("Failed to restore backup %s: %s", record.id, exc)
        return ExitCodes.FILE_ERROR
    print(f"Restored {record.original_path} from backup {record.id} ({record.description})")
    return ExitCodes.SUCCESS
