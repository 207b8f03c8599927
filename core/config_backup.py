"""
core/config_backup.py
Snapshots of a config document, taken before the supervisor rewrites it.

One directory per tracked document:

    <backups_dir>/<file_name>/manifest.json        {"source": ..., "backups": [...]}
    <backups_dir>/<file_name>/<ts>-<digest>.json   byte-for-byte copies

Identical consecutive contents are stored once and only the newest
MAX_BACKUPS copies are kept.  A rollback snapshots the current file first,
so it can itself be rolled back.
"""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import time

from core.config_store import read_document, write_document
from core.errors import CorruptDocument

logger = logging.getLogger(__name__)

MAX_BACKUPS = 20


def _digest(path: str) -> str | None:
    try:
        with open(path, "rb") as f:
            data = f.read()
    except FileNotFoundError:
        return None
    return hashlib.sha256(data).hexdigest()[:12]


class _BackupSet:
    """Backup directory and manifest of one document."""

    def __init__(self, backups_dir: str, config_path: str):
        self.config_path = config_path
        self.root = os.path.join(backups_dir,
                                 os.path.basename(config_path).replace(".", "_"))
        self.manifest_path = os.path.join(self.root, "manifest.json")

    def entries(self) -> list[dict]:
        try:
            doc = read_document(self.manifest_path)
        except CorruptDocument as e:
            logger.warning("Starting a new backup manifest: %s", e)
            return []
        backups = (doc or {}).get("backups")
        return [e for e in backups if isinstance(e, dict)] if isinstance(backups, list) else []

    def save(self, entries: list[dict]) -> None:
        write_document(self.manifest_path,
                       {"source": self.config_path, "backups": entries})

    def file(self, name: str) -> str:
        return os.path.join(self.root, name)


def snapshot(backups_dir: str, config_path: str, reason: str = "") -> str | None:
    """Copy *config_path* into the backup set.

    Returns the backup file name, or None when the file is missing or
    matches the newest backup.
    """
    digest = _digest(config_path)
    if digest is None:
        return None

    backups = _BackupSet(backups_dir, config_path)
    entries = backups.entries()
    if entries and entries[-1].get("hash") == digest:
        logger.debug("%s matches its newest backup", config_path)
        return None

    name = f"{time.strftime('%Y%m%d-%H%M%S')}-{digest}{os.path.splitext(config_path)[1]}"
    os.makedirs(backups.root, exist_ok=True)
    shutil.copy2(config_path, backups.file(name))
    entries.append({"file": name, "hash": digest, "timestamp": time.time(),
                    "reason": reason})

    dropped, entries = entries[:-MAX_BACKUPS], entries[-MAX_BACKUPS:]
    still_listed = {e.get("file") for e in entries}
    for entry in dropped:
        if entry.get("file") in still_listed:
            continue
        try:
            os.remove(backups.file(entry["file"]))
        except FileNotFoundError:
            pass

    backups.save(entries)
    logger.info("Backed up %s as %s (%s)", config_path, name, reason or "manual")
    return name


def rollback(backups_dir: str, config_path: str, version: int = -1) -> bool:
    """Restore backup number *version* (negative = from the newest).

    Returns False when there is no such backup.
    """
    backups = _BackupSet(backups_dir, config_path)
    entries = backups.entries()
    try:
        entry = entries[version]
    except IndexError:
        logger.warning("No backup %d of %s (%d kept)", version, config_path, len(entries))
        return False

    try:
        with open(backups.file(entry["file"]), "rb") as f:
            content = f.read()
    except FileNotFoundError:
        logger.error("Backup %s of %s is listed but missing", entry["file"], config_path)
        return False

    snapshot(backups_dir, config_path, reason=f"pre-rollback to {entry['file']}")
    os.makedirs(os.path.dirname(config_path) or ".", exist_ok=True)
    with open(config_path, "wb") as f:
        f.write(content)
    logger.info("Restored %s from %s", config_path, entry["file"])
    return True


def history(backups_dir: str, config_path: str) -> list[dict]:
    """Backups of *config_path*, oldest first: file, hash, timestamp, reason."""
    return _BackupSet(backups_dir, config_path).entries()
