"""
core/host.py: SupervisorHost: the operations a UI (or the CLI) may call.

    start / stop / status          gateway lifecycle
    save_api_key / load_api_key    supervisor settings
    sync_agent_auth                per-agent credential + identity
    invoke / call_method           control-channel calls
    run_command                    diagnostic shell passthrough

Build one per host process and tear it down on exit::

    async with SupervisorHost() as host:
        await host.start()
        print(await host.invoke("main", "hello", "chat-1"))

Errors surface as SupervisorError subclasses whose str() is the message
to show the user.
"""

from __future__ import annotations

import asyncio
import logging
import os

from core import config_backup, credentials
from core.config_store import load_api_key, save_api_key
from core.exec_tool import run_command
from core.gateway_cli import GatewayCommand
from core.gateway_client import GatewayClient
from core.health import HealthProbe
from core.logging_config import set_correlation_id
from core.paths import MAIN_AGENT, Paths
from core.settings import SupervisorOptions, load_options
from core.supervisor import GatewaySupervisor, StartOutcome

logger = logging.getLogger(__name__)


class SupervisorHost:

    def __init__(self, paths: Paths | None = None,
                 options: SupervisorOptions | None = None,
                 gateway: GatewayCommand | None = None,
                 probe: HealthProbe | None = None,
                 sleep=asyncio.sleep):
        self.paths = paths or Paths.from_env()
        self.options = options or load_options(self.paths)
        self.gateway = gateway or GatewayCommand(self.options.gateway_command)
        self.supervisor = GatewaySupervisor(self.paths, self.options,
                                            gateway=self.gateway, probe=probe,
                                            sleep=sleep)
        self.client = GatewayClient(self.paths, self.gateway,
                                    call_timeout_ms=self.options.call_timeout_ms)

    async def __aenter__(self) -> "SupervisorHost":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.shutdown()

    # ── lifecycle ────────────────────────────────────────────────────────

    async def start(self, agent_id: str = MAIN_AGENT) -> str:
        return (await self.start_detailed(agent_id)).state

    async def start_detailed(self, agent_id: str = MAIN_AGENT) -> StartOutcome:
        set_correlation_id()
        return await self.supervisor.start(agent_id)

    async def stop(self) -> str:
        set_correlation_id()
        return await self.supervisor.stop()

    async def status(self) -> str:
        return await self.supervisor.status()

    async def shutdown(self) -> None:
        await self.supervisor.shutdown()

    # ── settings & agents ────────────────────────────────────────────────

    def save_api_key(self, key: str) -> None:
        save_api_key(self.paths, key)

    def load_api_key(self) -> str:
        return load_api_key(self.paths)

    def sync_agent_auth(self, agent_id: str, api_key: str, name: str,
                        system_prompt: str) -> None:
        credentials.sync_agent_auth(self.paths, agent_id, api_key, name, system_prompt)

    def config_history(self) -> list[dict]:
        return config_backup.history(self.paths.backups_dir, self.paths.gateway_config)

    def rollback_config(self, version: int = -1) -> bool:
        return config_backup.rollback(self.paths.backups_dir,
                                      self.paths.gateway_config, version)

    # ── control channel ──────────────────────────────────────────────────

    async def invoke(self, agent_id: str, message: str, session_key: str,
                     system_prompt: str | None = None) -> str:
        set_correlation_id()
        return await self.client.invoke(agent_id, message, session_key, system_prompt)

    async def call_method(self, method: str, json_params: str) -> str:
        set_correlation_id()
        return await self.client.call_method(method, json_params)

    async def run_command(self, command: str) -> str:
        return await run_command(command,
                                 log_path=os.path.join(self.paths.logs_dir, "exec.log"))
