"""
core/paths.py
Fixed filesystem locations for the supervisor and the gateway.

Two roots:
  - config_dir:   the supervisor's own per-user directory
                  (~/.config/clapp, ~/Library/Application Support/clapp,
                  %APPDATA%\\clapp)
  - openclaw_dir: the gateway's state directory (~/.openclaw)

Both can be relocated with CLAPP_CONFIG_DIR / OPENCLAW_STATE_DIR.
"""

from __future__ import annotations

import os
import platform
import re
from dataclasses import dataclass

from core.errors import InvalidAgentId

APP_NAME = "clapp"
MAIN_AGENT = "main"

_SAFE_AGENT_ID = re.compile(r"^[a-zA-Z0-9_-]+$")


def user_config_dir() -> str:
    """Per-user configuration base directory for the current OS."""
    system = platform.system()
    if system == "Windows":
        return os.environ.get("APPDATA") or os.path.expanduser("~")
    if system == "Darwin":
        return os.path.expanduser("~/Library/Application Support")
    return os.environ.get("XDG_CONFIG_HOME") or os.path.expanduser("~/.config")


def validate_agent_id(agent_id: str) -> str:
    if not agent_id or not _SAFE_AGENT_ID.match(agent_id):
        raise InvalidAgentId(f"Invalid agent id: {agent_id!r}")
    return agent_id


@dataclass(frozen=True)
class Paths:
    config_dir: str
    openclaw_dir: str

    @classmethod
    def from_env(cls) -> "Paths":
        config_dir = os.environ.get("CLAPP_CONFIG_DIR") or os.path.join(
            user_config_dir(), APP_NAME)
        openclaw_dir = os.environ.get("OPENCLAW_STATE_DIR") or os.path.expanduser(
            "~/.openclaw")
        return cls(config_dir=config_dir, openclaw_dir=openclaw_dir)

    # ── supervisor-owned ──

    @property
    def settings_file(self) -> str:
        return os.path.join(self.config_dir, "config.json")

    @property
    def options_file(self) -> str:
        return os.path.join(self.config_dir, "supervisor.yaml")

    @property
    def logs_dir(self) -> str:
        return os.path.join(self.config_dir, "logs")

    @property
    def backups_dir(self) -> str:
        return os.path.join(self.config_dir, "backups")

    @property
    def start_lock(self) -> str:
        return os.path.join(self.config_dir, "start.lock")

    # ── gateway-owned ──

    @property
    def gateway_config(self) -> str:
        return os.path.join(self.openclaw_dir, "openclaw.json")

    @property
    def agents_root(self) -> str:
        return os.path.join(self.openclaw_dir, "agents")

    def agent_dir(self, agent_id: str) -> str:
        return os.path.join(self.agents_root, validate_agent_id(agent_id), "agent")

    def auth_profiles(self, agent_id: str) -> str:
        return os.path.join(self.agent_dir(agent_id), "auth-profiles.json")

    def agent_identity(self, agent_id: str) -> str:
        return os.path.join(self.agent_dir(agent_id), "agent.json")
