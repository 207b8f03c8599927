"""
core/tokens.py
Gateway config provisioning: openclaw.json always exists, is clean, and
carries a bearer token.

The gateway validates its config strictly, so top-level fields written by
older versions (``providers``, ``version``) are stripped on every pass.
The token is generated once and never rotated here.
"""

from __future__ import annotations

import logging
import os
import time

from core import config_backup
from core.config_store import read_document, write_document
from core.errors import CorruptDocument, Unconfigured
from core.paths import Paths

logger = logging.getLogger(__name__)

DEFAULT_PORT = 18789
BIND_MODES = ("loopback", "lan")
DEPRECATED_FIELDS = ("providers", "version")
TOKEN_PREFIX = "local-"


def generate_token() -> str:
    """Opaque per-install token: ns timestamp + pid.

    Unique in practice, not a secret of any particular strength.
    """
    return f"{TOKEN_PREFIX}{time.time_ns():x}-{os.getpid():x}"


def token_from(doc: dict | None) -> str:
    """Extract gateway.auth.token, or "" if absent or not a string."""
    if not isinstance(doc, dict):
        return ""
    gateway = doc.get("gateway")
    if not isinstance(gateway, dict):
        return ""
    auth = gateway.get("auth")
    if not isinstance(auth, dict):
        return ""
    token = auth.get("token")
    return token if isinstance(token, str) else ""


def strip_deprecated(doc: dict) -> bool:
    """Remove obsolete top-level fields in place. Returns True if any were removed."""
    removed = [k for k in DEPRECATED_FIELDS if k in doc]
    for k in removed:
        del doc[k]
    return bool(removed)


def ensure_gateway_config(paths: Paths, port: int = DEFAULT_PORT,
                          bind: str = "loopback") -> str:
    """Make sure openclaw.json is usable and return its token."""
    if bind not in BIND_MODES:
        raise ValueError(f"bind must be one of {BIND_MODES}, got {bind!r}")

    path = paths.gateway_config
    try:
        doc = read_document(path)
    except CorruptDocument as e:
        logger.warning("%s, replacing with a fresh gateway config", e)
        config_backup.snapshot(paths.backups_dir, path, reason="corrupt")
        doc = None

    if doc is not None:
        changed = strip_deprecated(doc)
        token = token_from(doc)
        if token:
            if changed:
                config_backup.snapshot(paths.backups_dir, path,
                                       reason="strip deprecated fields")
                write_document(path, doc)
                logger.info("Removed deprecated fields from %s", path)
            return token
    else:
        doc = {}

    token = generate_token()
    doc["gateway"] = {
        "mode": "local",
        "port": port,
        "bind": bind,
        "auth": {"token": token},
    }
    if os.path.exists(path):
        config_backup.snapshot(paths.backups_dir, path, reason="token provisioning")
    write_document(path, doc)
    logger.info("Provisioned gateway config %s (port=%d, bind=%s)", path, port, bind)
    return token


def read_gateway_token(paths: Paths) -> str:
    """Token for control-channel calls.

    Raises Unconfigured if the config or its token is missing, and
    CorruptDocument if the config does not parse.
    """
    doc = read_document(paths.gateway_config)
    if doc is None:
        raise Unconfigured(f"{paths.gateway_config} not found. Start the gateway first.")
    token = token_from(doc)
    if not token:
        raise Unconfigured(f"Gateway token is empty in {paths.gateway_config}")
    return token
