"""
core/config_store.py
Small JSON documents at fixed filesystem locations.

  read_document(path)        → dict, or None when the file does not exist
  write_document(path, doc)  → whole-document overwrite (atomic rename)

No locking: one supervisor per machine is assumed.  Hand edits are
tolerated on read; on write the last writer wins.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass

from core.errors import CorruptDocument
from core.paths import Paths

logger = logging.getLogger(__name__)


def read_document(path: str) -> dict | None:
    """Load a JSON object from *path*.

    Returns None if the file is missing.  Raises CorruptDocument if it
    exists but is not a JSON object.
    """
    try:
        with open(path, encoding="utf-8") as f:
            raw = f.read()
    except FileNotFoundError:
        return None

    try:
        doc = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CorruptDocument(path, str(e)) from e
    if not isinstance(doc, dict):
        raise CorruptDocument(path, f"expected a JSON object, got {type(doc).__name__}")
    return doc


def write_document(path: str, doc: dict) -> None:
    """Overwrite *path* with *doc*, creating parent directories."""
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    tmp = path + ".tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(doc, f, indent=2, ensure_ascii=False)
        f.write("\n")
    os.replace(tmp, path)
    logger.debug("Document written: %s", path)


# ── Supervisor settings ──────────────────────────────────────────────────────

@dataclass
class SupervisorSettings:
    """The supervisor's own settings document: ``{"api_key": ...}``."""
    api_key: str = ""

    @classmethod
    def load(cls, paths: Paths) -> "SupervisorSettings":
        doc = read_document(paths.settings_file)
        if doc is None:
            return cls()
        key = doc.get("api_key")
        return cls(api_key=key if isinstance(key, str) else "")

    def save(self, paths: Paths) -> None:
        write_document(paths.settings_file, asdict(self))


def load_api_key(paths: Paths) -> str:
    return SupervisorSettings.load(paths).api_key


def save_api_key(paths: Paths, key: str) -> None:
    SupervisorSettings(api_key=key.strip()).save(paths)
    logger.info("API key saved to %s", paths.settings_file)
