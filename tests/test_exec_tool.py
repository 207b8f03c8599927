"""
tests/test_exec_tool.py
Diagnostic shell passthrough: output selection, timeout, exec log.
"""

import json
import platform

import pytest

from core.exec_tool import run_command

pytestmark = pytest.mark.skipif(platform.system() == "Windows",
                                reason="POSIX shell commands")


class TestRunCommand:

    @pytest.mark.asyncio
    async def test_stdout(self):
        assert await run_command("echo hello") == "hello\n"

    @pytest.mark.asyncio
    async def test_stderr_when_stdout_empty(self):
        assert await run_command("echo oops 1>&2; exit 3") == "oops\n"

    @pytest.mark.asyncio
    async def test_stdout_preferred(self):
        assert await run_command("echo out; echo err 1>&2") == "out\n"

    @pytest.mark.asyncio
    async def test_timeout_is_text(self):
        out = await run_command("sleep 5", timeout=0.2)
        assert out.startswith("Timed out")

    @pytest.mark.asyncio
    async def test_exec_log(self, tmp_path):
        log_path = tmp_path / "logs" / "exec.log"
        await run_command("echo one", log_path=str(log_path))
        await run_command("exit 1", log_path=str(log_path))

        entries = [json.loads(line) for line in log_path.read_text().splitlines()]
        assert [e["cmd"] for e in entries] == ["echo one", "exit 1"]
        assert [e["ok"] for e in entries] == [True, False]
        assert entries[0]["output_len"] == 4
