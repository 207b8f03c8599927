"""
core/credentials.py
Per-agent credential and identity records under ~/.openclaw/agents/.

    agents/{agent_id}/agent/auth-profiles.json   credential record
    agents/{agent_id}/agent/agent.json           name + instructions

The gateway falls back to the "main" identity for connections that do not
name an agent, so every explicit write is mirrored onto "main".
"""

from __future__ import annotations

import logging
import os

from core.config_store import load_api_key, read_document, write_document
from core.errors import CorruptDocument, InvalidAgentId, Unconfigured
from core.paths import MAIN_AGENT, Paths, validate_agent_id

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = "anthropic:default"
DEFAULT_PROVIDER = "anthropic"


def build_auth_profile(api_key: str) -> dict:
    return {
        "version": 1,
        "profiles": {
            DEFAULT_PROFILE: {
                "type": "api_key",
                "provider": DEFAULT_PROVIDER,
                "key": api_key,
            },
        },
        "lastGood": {DEFAULT_PROVIDER: DEFAULT_PROFILE},
        "usageStats": {},
    }


def is_usable(record: dict | None) -> bool:
    """A credential record is usable iff some profile has a non-empty key."""
    if not isinstance(record, dict):
        return False
    profiles = record.get("profiles")
    if not isinstance(profiles, dict):
        return False
    for profile in profiles.values():
        if isinstance(profile, dict):
            key = profile.get("key")
            if isinstance(key, str) and key.strip():
                return True
    return False


def write_auth_profile(paths: Paths, agent_id: str, api_key: str) -> None:
    write_document(paths.auth_profiles(agent_id), build_auth_profile(api_key))


def write_agent_identity(paths: Paths, agent_id: str, name: str,
                         system_prompt: str) -> None:
    write_document(paths.agent_identity(agent_id), {
        "name": name,
        "instructions": system_prompt,
    })


def _read_credential(paths: Paths, agent_id: str) -> dict | None:
    """Read an agent's credential record; a corrupt one counts as absent."""
    try:
        return read_document(paths.auth_profiles(agent_id))
    except CorruptDocument as e:
        logger.warning("Ignoring %s", e)
        return None


def list_agent_ids(paths: Paths) -> list[str]:
    """Agent directories under the agents root, sorted by name."""
    try:
        names = os.listdir(paths.agents_root)
    except FileNotFoundError:
        return []
    ids = []
    for name in sorted(names):
        if not os.path.isdir(os.path.join(paths.agents_root, name)):
            continue
        try:
            ids.append(validate_agent_id(name))
        except InvalidAgentId:
            logger.debug("Skipping agent dir with unsafe name: %r", name)
    return ids


def ensure_agent_has_credential(paths: Paths, agent_id: str) -> str:
    """
    Make sure *agent_id* has a usable credential record.

    Policy, first match wins:
      1. own record already usable         → "present"
      2. supervisor holds an API key        → synthesize record, "synthesized"
      3. another agent has a usable record  → copy it verbatim, "copied:<id>"
      4. nothing found                      → "missing" (nothing written)

    Other agents are scanned in sorted directory order.
    """
    validate_agent_id(agent_id)

    if is_usable(_read_credential(paths, agent_id)):
        return "present"

    api_key = load_api_key(paths)
    if api_key.strip():
        write_auth_profile(paths, agent_id, api_key)
        logger.info("[credentials] synthesized record for '%s' from stored key",
                    agent_id)
        return "synthesized"

    for other in list_agent_ids(paths):
        if other == agent_id:
            continue
        record = _read_credential(paths, other)
        if is_usable(record):
            write_document(paths.auth_profiles(agent_id), record)
            logger.info("[credentials] copied record '%s' → '%s'", other, agent_id)
            return f"copied:{other}"

    logger.warning("[credentials] no usable credential for '%s'", agent_id)
    return "missing"


def mirror_to_main(paths: Paths, agent_id: str) -> bool:
    """Copy *agent_id*'s usable credential record onto "main".

    Returns True if main was (re)written.
    """
    if agent_id == MAIN_AGENT:
        return False
    record = _read_credential(paths, agent_id)
    if not is_usable(record):
        return False
    if _read_credential(paths, MAIN_AGENT) == record:
        return False
    write_document(paths.auth_profiles(MAIN_AGENT), record)
    logger.info("[credentials] mirrored '%s' → '%s'", agent_id, MAIN_AGENT)
    return True


def mirror_identity_to_main(paths: Paths, agent_id: str) -> bool:
    """Copy *agent_id*'s identity record (name + instructions) onto "main".

    A missing or corrupt source identity leaves "main" as it is; a corrupt
    "main" identity is overwritten.  Returns True if main was (re)written.
    """
    if agent_id == MAIN_AGENT:
        return False
    try:
        identity = read_document(paths.agent_identity(agent_id))
    except CorruptDocument as e:
        logger.warning("Not mirroring identity: %s", e)
        return False
    try:
        current = read_document(paths.agent_identity(MAIN_AGENT))
    except CorruptDocument:
        current = None
    if identity is None or identity == current:
        return False
    write_document(paths.agent_identity(MAIN_AGENT), identity)
    logger.info("[credentials] mirrored identity '%s' → '%s'", agent_id, MAIN_AGENT)
    return True


def sync_agent_auth(paths: Paths, agent_id: str, api_key: str, name: str,
                    system_prompt: str) -> None:
    """Write credential + identity for *agent_id* and mirror both to "main"."""
    validate_agent_id(agent_id)
    if not api_key.strip():
        raise Unconfigured("API key is empty")

    write_auth_profile(paths, agent_id, api_key)
    write_agent_identity(paths, agent_id, name, system_prompt)

    if agent_id != MAIN_AGENT:
        write_auth_profile(paths, MAIN_AGENT, api_key)
        write_agent_identity(paths, MAIN_AGENT, name, system_prompt)
    logger.info("[credentials] synced '%s' (mirrored to '%s')", agent_id, MAIN_AGENT)
