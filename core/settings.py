"""
core/settings.py
Supervisor tuning: ports, probe kind, polling budget, timeouts.

Resolution order (later wins):
  1. dataclass defaults
  2. <config_dir>/supervisor.yaml   (optional)
  3. CLAPP_* environment variables

Example supervisor.yaml:

    gateway:
      port: 18789
      bind: loopback
      command: [npx, openclaw, gateway]
    health:
      probe: cli          # cli | http
      marker: ok
      timeout: 15
      interval: 0.5
      attempts: 20
    call_timeout_ms: 130000
    logging:
      level: INFO
      structured: false
"""

from __future__ import annotations

import logging
import os
import platform
import shlex
from dataclasses import dataclass, field

import yaml

from core.errors import CorruptDocument
from core.paths import Paths
from core.tokens import BIND_MODES, DEFAULT_PORT

logger = logging.getLogger(__name__)

PROBE_KINDS = ("cli", "http")


def default_gateway_command() -> list[str]:
    """Prefix for every gateway sub-command."""
    if platform.system() == "Windows":
        # npx is a .cmd shim on Windows and cannot be exec'd directly
        return ["cmd", "/C", "npx", "openclaw", "gateway"]
    return ["npx", "openclaw", "gateway"]


@dataclass
class SupervisorOptions:
    port: int = DEFAULT_PORT
    bind: str = "loopback"
    gateway_command: list[str] = field(default_factory=default_gateway_command)

    health_probe: str = "cli"
    health_marker: str = "ok"
    health_timeout: float = 15.0
    poll_interval: float = 0.5
    poll_attempts: int = 20

    pair_timeout: float = 30.0
    call_timeout_ms: int = 130_000
    start_lock_timeout: float = 60.0

    log_level: str = "INFO"
    structured_logs: bool = False

    @property
    def readiness_budget(self) -> float:
        """Worst-case seconds spent polling before a ReadinessTimeout."""
        return self.poll_interval * self.poll_attempts

    def validate(self) -> "SupervisorOptions":
        if self.bind not in BIND_MODES:
            raise ValueError(f"gateway.bind must be one of {BIND_MODES}, got {self.bind!r}")
        if self.health_probe not in PROBE_KINDS:
            raise ValueError(
                f"health.probe must be one of {PROBE_KINDS}, got {self.health_probe!r}")
        if self.poll_attempts < 1:
            raise ValueError("health.attempts must be at least 1")
        if not self.gateway_command:
            raise ValueError("gateway.command must not be empty")
        return self


def _apply_yaml(opts: SupervisorOptions, data: dict) -> None:
    gw = data.get("gateway") or {}
    health = data.get("health") or {}
    log_cfg = data.get("logging") or {}

    if "port" in gw:
        opts.port = int(gw["port"])
    if "bind" in gw:
        opts.bind = str(gw["bind"])
    if "command" in gw:
        cmd = gw["command"]
        opts.gateway_command = shlex.split(cmd) if isinstance(cmd, str) else [str(c) for c in cmd]

    if "probe" in health:
        opts.health_probe = str(health["probe"])
    if "marker" in health:
        opts.health_marker = str(health["marker"])
    if "timeout" in health:
        opts.health_timeout = float(health["timeout"])
    if "interval" in health:
        opts.poll_interval = float(health["interval"])
    if "attempts" in health:
        opts.poll_attempts = int(health["attempts"])

    if "pair_timeout" in data:
        opts.pair_timeout = float(data["pair_timeout"])
    if "call_timeout_ms" in data:
        opts.call_timeout_ms = int(data["call_timeout_ms"])
    if "start_lock_timeout" in data:
        opts.start_lock_timeout = float(data["start_lock_timeout"])

    if "level" in log_cfg:
        opts.log_level = str(log_cfg["level"])
    if "structured" in log_cfg:
        opts.structured_logs = bool(log_cfg["structured"])


def _apply_env(opts: SupervisorOptions) -> None:
    env = os.environ
    if env.get("CLAPP_GATEWAY_PORT"):
        opts.port = int(env["CLAPP_GATEWAY_PORT"])
    if env.get("CLAPP_GATEWAY_BIND"):
        opts.bind = env["CLAPP_GATEWAY_BIND"]
    if env.get("CLAPP_GATEWAY_COMMAND"):
        opts.gateway_command = shlex.split(env["CLAPP_GATEWAY_COMMAND"])
    if env.get("CLAPP_HEALTH_PROBE"):
        opts.health_probe = env["CLAPP_HEALTH_PROBE"]
    if env.get("CLAPP_LOG_LEVEL"):
        opts.log_level = env["CLAPP_LOG_LEVEL"]


def load_options(paths: Paths) -> SupervisorOptions:
    """Build SupervisorOptions from supervisor.yaml and the environment."""
    opts = SupervisorOptions()
    path = paths.options_file
    if os.path.exists(path):
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise CorruptDocument(path, str(e)) from e
        if not isinstance(data, dict):
            raise CorruptDocument(path, "expected a mapping at the top level")
        try:
            _apply_yaml(opts, data)
        except (TypeError, ValueError) as e:
            raise CorruptDocument(path, str(e)) from e
        logger.debug("Loaded supervisor options from %s", path)
    _apply_env(opts)
    return opts.validate()
