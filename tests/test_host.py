"""
tests/test_host.py
SupervisorHost: the host-facing operations wired together.
"""

import json
import logging
import os
import platform

import pytest

from conftest import FakeGateway, FakeProbe, RecordingSleep

from core.config_store import read_document
from core.errors import Unconfigured
from core.gateway_cli import CommandResult
from core.host import SupervisorHost


def _host(paths, options, probe, gateway=None):
    return SupervisorHost(paths, options, gateway=gateway or FakeGateway(),
                          probe=probe, sleep=RecordingSleep())


class TestHostLifecycle:

    @pytest.mark.asyncio
    async def test_start_stop_status(self, paths, options):
        gateway = FakeGateway()
        async with _host(paths, options, FakeProbe(False, True, True), gateway) as host:
            host.save_api_key("sk-host")
            assert host.load_api_key() == "sk-host"

            assert await host.start() == "running"
            assert await host.status() == "running"
            assert await host.stop() == "stopped"
        assert gateway.processes[0].killed

    @pytest.mark.asyncio
    async def test_exit_stops_gateway(self, paths, options, api_key):
        gateway = FakeGateway()
        async with _host(paths, options, FakeProbe(False, True), gateway) as host:
            await host.start()
            assert host.supervisor.has_handle
        assert gateway.processes[0].killed
        assert not host.supervisor.has_handle

    @pytest.mark.asyncio
    async def test_pairing_warning_logged_once(self, paths, options, api_key, caplog):
        caplog.set_level(logging.INFO)
        gateway = FakeGateway(results={
            "pair": CommandResult("", "device already paired\n", 1),
        })
        async with _host(paths, options, FakeProbe(False, True), gateway) as host:
            outcome = await host.start_detailed()
        assert "already paired" in outcome.pairing_warning
        warnings = [r for r in caplog.records
                    if r.levelno == logging.WARNING and "already paired" in r.getMessage()]
        assert len(warnings) == 1

    @pytest.mark.asyncio
    async def test_start_without_key(self, paths, options):
        async with _host(paths, options, FakeProbe(True)) as host:
            with pytest.raises(Unconfigured):
                await host.start()


class TestHostOperations:

    @pytest.mark.asyncio
    async def test_sync_then_invoke(self, paths, options, api_key):
        gateway = FakeGateway(results={"call": CommandResult('{"text": "hi"}', "", 0)})
        async with _host(paths, options, FakeProbe(True), gateway) as host:
            host.sync_agent_auth("agent7", "sk-xyz", "Bot", "be helpful")
            assert read_document(paths.agent_identity("main"))["name"] == "Bot"

            await host.start("agent7")
            assert await host.invoke("agent7", "hello", "s1") == '{"text": "hi"}'
            assert await host.call_method("health", "{}") == '{"text": "hi"}'
        assert [c[1] for c in gateway.calls_for("call")] == ["agent", "health"]

    @pytest.mark.asyncio
    async def test_config_history_and_rollback(self, paths, options, api_key):
        os.makedirs(paths.openclaw_dir)
        with open(paths.gateway_config, "w") as f:
            json.dump({"version": 1, "gateway": {"auth": {"token": "t"}}}, f)

        async with _host(paths, options, FakeProbe(True)) as host:
            await host.start()
            assert "version" not in read_document(paths.gateway_config)
            assert len(host.config_history()) == 1

            assert host.rollback_config() is True
            assert read_document(paths.gateway_config)["version"] == 1

    @pytest.mark.asyncio
    @pytest.mark.skipif(platform.system() == "Windows", reason="POSIX shell")
    async def test_run_command_logs(self, paths, options):
        async with _host(paths, options, FakeProbe(True)) as host:
            assert await host.run_command("echo diag") == "diag\n"
        assert os.path.exists(os.path.join(paths.logs_dir, "exec.log"))
