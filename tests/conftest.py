"""
tests/conftest.py
Shared fixtures for clapp tests.
Provides isolated config/state directories and fakes for the gateway CLI.
"""

import asyncio
import logging

import pytest

from core.config_store import save_api_key
from core.gateway_cli import CommandResult
from core.health import HealthProbe
from core.paths import Paths
from core.settings import SupervisorOptions


@pytest.fixture
def paths(tmp_path, monkeypatch):
    """Supervisor config dir and gateway state dir under tmp_path."""
    monkeypatch.setenv("CLAPP_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("OPENCLAW_STATE_DIR", str(tmp_path / "openclaw"))
    for var in ("CLAPP_GATEWAY_PORT", "CLAPP_GATEWAY_BIND", "CLAPP_GATEWAY_COMMAND",
                "CLAPP_HEALTH_PROBE", "CLAPP_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    return Paths.from_env()


@pytest.fixture
def api_key(paths):
    save_api_key(paths, "sk-test-123")
    return "sk-test-123"


@pytest.fixture
def options():
    return SupervisorOptions(gateway_command=["openclaw", "gateway"],
                             start_lock_timeout=5)


@pytest.fixture
def restore_logging():
    """Undo setup_logging() changes to the root logger."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for h in root.handlers[:]:
        if h not in handlers:
            h.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class FakeProcess:
    """Stand-in for asyncio.subprocess.Process. Create inside a running loop."""

    def __init__(self, pid=4242, stdout=b"", stderr=b"", returncode=None):
        self.pid = pid
        self.returncode = returncode
        self.killed = False
        self.stdout = asyncio.StreamReader()
        self.stdout.feed_data(stdout)
        self.stdout.feed_eof()
        self.stderr = asyncio.StreamReader()
        self.stderr.feed_data(stderr)
        self.stderr.feed_eof()
        self._exited = asyncio.Event()

    def kill(self):
        self.killed = True
        if self.returncode is None:
            self.returncode = -9
        self._exited.set()

    async def wait(self):
        if self.returncode is None:
            await self._exited.wait()
        return self.returncode


class FakeGateway:
    """
    Records every gateway sub-command instead of running it.

    results maps a sub-command name ("health", "pair", "call") to a
    CommandResult, or to an exception to raise.  Unlisted commands
    succeed with empty output.
    """

    def __init__(self, results=None, spawn_error=None, **process_kwargs):
        self.base = ["openclaw", "gateway"]
        self.results = dict(results or {})
        self.spawn_error = spawn_error
        self.process_kwargs = process_kwargs
        self.calls = []
        self.timeouts = []
        self.spawned = []
        self.processes = []

    def argv(self, *args):
        return [*self.base, *args]

    def calls_for(self, name):
        return [c for c in self.calls if c[0] == name]

    async def run(self, *args, timeout, env=None):
        self.calls.append(list(args))
        self.timeouts.append(timeout)
        outcome = self.results.get(args[0], CommandResult("", "", 0))
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def spawn(self, *args, env=None):
        self.spawned.append((list(args), env))
        if self.spawn_error is not None:
            raise self.spawn_error
        proc = FakeProcess(pid=4242 + len(self.processes), **self.process_kwargs)
        self.processes.append(proc)
        return proc


class FakeProbe(HealthProbe):
    """Answers from a script; the last answer repeats forever."""

    def __init__(self, *answers):
        self.answers = list(answers) or [False]
        self.calls = 0

    async def check(self):
        self.calls += 1
        if len(self.answers) > 1:
            return self.answers.pop(0)
        return self.answers[0]


class RecordingSleep:
    """Replaces asyncio.sleep: records each delay, yields without waiting."""

    def __init__(self, on_call=None):
        self.delays = []
        self.on_call = on_call

    async def __call__(self, delay):
        self.delays.append(delay)
        if self.on_call is not None:
            await self.on_call(len(self.delays))
        await asyncio.sleep(0)

    @property
    def total(self):
        return sum(self.delays)
