"""
core/supervisor.py: GatewaySupervisor: one gateway process, started once.

    IDLE ─▶ PROBING ─┬─ healthy ──────────────────────────▶ RUNNING (reuse)
                     └─ down ─▶ spawn ─▶ STARTING ─┬─ healthy ─▶ RUNNING ─▶ pair
                                                   ├─ budget spent ─▶ FAILED
                                                   └─ stop() ───────▶ STOPPED
    stop() from any state ─▶ STOPPED

start() order is fixed: reconcile config → probe → spawn → poll → pair.
Polling sleeps a fixed interval before every probe, so the worst case is
exactly ``poll_attempts × poll_interval``.  Any failure after the spawn
kills the process and clears the handle.

The handle is the only shared mutable state and is guarded by ``_lock``;
``_start_lock`` serializes whole start() calls inside this process and a
per-user lock file serializes them across supervisor processes.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import subprocess
import time
from dataclasses import dataclass
from enum import Enum

from filelock import FileLock, Timeout

from core import credentials
from core.config_store import load_api_key
from core.errors import (
    ProcessSpawnFailure,
    ReadinessTimeout,
    StartCancelled,
    SupervisorError,
    Unconfigured,
)
from core.gateway_cli import GatewayCommand
from core.health import HealthProbe, build_probe
from core.pairing import pair
from core.paths import MAIN_AGENT, Paths
from core.settings import SupervisorOptions
from core.tokens import ensure_gateway_config

logger = logging.getLogger(__name__)
gateway_log = logging.getLogger("clapp.gateway")

# Both point at the same key: which provider it belongs to is not known here.
PRIMARY_KEY_ENV = "ANTHROPIC_API_KEY"
FALLBACK_KEY_ENV = "OPENAI_API_KEY"

INSTALL_HINT = "npm install -g openclaw"
KILL_WAIT = 5.0
LOCK_POLL = 0.1
PORT_RELEASE_WAIT = 0.5


class SupervisorState(str, Enum):
    IDLE = "idle"
    PROBING = "probing"
    STARTING = "starting"
    RUNNING = "running"
    FAILED = "failed"
    STOPPED = "stopped"


@dataclass
class StartOutcome:
    """Result of a successful start()."""
    spawned: bool
    pairing_warning: str | None = None
    state: str = "running"


class GatewaySupervisor:
    """Owns the lifecycle of the gateway subprocess."""

    def __init__(self, paths: Paths, options: SupervisorOptions,
                 gateway: GatewayCommand | None = None,
                 probe: HealthProbe | None = None,
                 sleep=asyncio.sleep):
        self.paths = paths
        self.options = options
        self.gateway = gateway or GatewayCommand(options.gateway_command)
        self.probe = probe or build_probe(options, self.gateway)
        self.state = SupervisorState.IDLE
        self.last_pairing_warning: str | None = None

        self._sleep = sleep
        self._process: asyncio.subprocess.Process | None = None
        self._lock = asyncio.Lock()
        self._start_lock = asyncio.Lock()
        self._stop_requested = asyncio.Event()
        self._relay_tasks: set[asyncio.Task] = set()
        self._host_lock = FileLock(paths.start_lock, thread_local=False)

    # ── queries ──────────────────────────────────────────────────────────

    @property
    def pid(self) -> int | None:
        proc = self._process
        return proc.pid if proc is not None else None

    @property
    def has_handle(self) -> bool:
        return self._process is not None

    async def status(self) -> str:
        """Fresh probe every time; the local handle proves nothing either way."""
        healthy = await self.probe.check()
        if not healthy and self._process is not None:
            logger.info("Holding gateway pid=%s but the probe reports it down",
                        self.pid)
        return "running" if healthy else "stopped"

    # ── start ────────────────────────────────────────────────────────────

    async def start(self, agent_id: str = MAIN_AGENT) -> StartOutcome:
        """Reuse a healthy gateway or spawn one and wait for it.

        Raises Unconfigured, CorruptDocument, ProcessSpawnFailure,
        ReadinessTimeout or StartCancelled.  Pairing problems are
        reported in ``StartOutcome.pairing_warning`` only.
        """
        async with self._start_lock:
            self._stop_requested.clear()
            await self._acquire_host_lock()
            try:
                return await self._start(agent_id)
            finally:
                self._host_lock.release()

    async def _acquire_host_lock(self) -> None:
        """Poll the lock file without blocking the loop.

        Never hands the acquire to a worker thread: a cancelled start()
        would leave that thread holding the lock with nobody to release it.
        """
        os.makedirs(os.path.dirname(self.paths.start_lock), exist_ok=True)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.options.start_lock_timeout
        while True:
            try:
                self._host_lock.acquire(timeout=0)
                return
            except Timeout:
                if loop.time() >= deadline:
                    raise SupervisorError(
                        "Another clapp process is starting the gateway "
                        f"(lock {self.paths.start_lock} held for "
                        f"{self.options.start_lock_timeout:g}s)") from None
            await asyncio.sleep(LOCK_POLL)

    async def _start(self, agent_id: str) -> StartOutcome:
        api_key, token = await asyncio.to_thread(self._reconcile, agent_id)

        self._raise_if_stopped()
        self.state = SupervisorState.PROBING
        healthy = await self.probe.check()
        self._raise_if_stopped()
        if healthy:
            self.state = SupervisorState.RUNNING
            logger.info("Gateway already healthy, reusing it")
            return StartOutcome(spawned=False)

        await self._discard_stale_handle()
        proc = await self._spawn(api_key)
        try:
            await self._wait_until_ready(proc)
        except (SupervisorError, asyncio.CancelledError) as e:
            self.state = (SupervisorState.STOPPED if isinstance(e, StartCancelled)
                          else SupervisorState.FAILED)
            await self._discard(proc)
            raise

        self.state = SupervisorState.RUNNING
        logger.info("Gateway running (pid=%s)", proc.pid)

        self.last_pairing_warning = await pair(self.gateway, token,
                                               timeout=self.options.pair_timeout)
        return StartOutcome(spawned=True, pairing_warning=self.last_pairing_warning)

    def _raise_if_stopped(self) -> None:
        if self._stop_requested.is_set():
            self.state = SupervisorState.STOPPED
            raise StartCancelled("Gateway start aborted by stop")

    def _reconcile(self, agent_id: str) -> tuple[str, str]:
        """Blocking config work; runs on a worker thread."""
        api_key = load_api_key(self.paths)
        if not api_key.strip():
            raise Unconfigured("Add an API key first: clapp config set-key")

        token = ensure_gateway_config(self.paths, port=self.options.port,
                                      bind=self.options.bind)
        credentials.ensure_agent_has_credential(self.paths, agent_id)
        if agent_id != MAIN_AGENT:
            credentials.mirror_to_main(self.paths, agent_id)
            credentials.mirror_identity_to_main(self.paths, agent_id)
            credentials.ensure_agent_has_credential(self.paths, MAIN_AGENT)
        return api_key, token

    async def _spawn(self, api_key: str) -> asyncio.subprocess.Process:
        env = {PRIMARY_KEY_ENV: api_key, FALLBACK_KEY_ENV: api_key}
        try:
            proc = await self.gateway.spawn(
                "run", "--port", str(self.options.port), "--bind", self.options.bind,
                env=env,
            )
        except OSError as e:
            self.state = SupervisorState.FAILED
            raise ProcessSpawnFailure(f"Could not launch gateway: {e}") from e

        async with self._lock:
            self._process = proc
        self.state = SupervisorState.STARTING
        self._start_relay(proc)
        logger.info("Gateway spawned (pid=%s), waiting up to %gs for health",
                    proc.pid, self.options.readiness_budget)
        return proc

    async def _wait_until_ready(self, proc) -> None:
        for attempt in range(1, self.options.poll_attempts + 1):
            await self._sleep(self.options.poll_interval)
            if self._stop_requested.is_set():
                raise StartCancelled("Gateway start aborted by stop")
            if proc.returncode is not None:
                raise ProcessSpawnFailure(
                    f"Gateway exited with code {proc.returncode} before becoming "
                    f"healthy (is port {self.options.port} already in use?)")
            if await self.probe.check():
                logger.debug("Gateway healthy after %d attempt(s)", attempt)
                return
        raise ReadinessTimeout(
            f"Gateway did not start within {self.options.readiness_budget:g}s. "
            f"Check: {INSTALL_HINT}")

    # ── output relay ─────────────────────────────────────────────────────

    def _start_relay(self, proc) -> None:
        for stream, level, prefix in ((proc.stdout, logging.INFO, "[GW]"),
                                      (proc.stderr, logging.WARNING, "[GW ERR]")):
            if stream is None:
                continue
            task = asyncio.create_task(_relay(stream, level, prefix),
                                       name=f"gateway-relay-{prefix}")
            self._relay_tasks.add(task)
            task.add_done_callback(self._relay_tasks.discard)

    # ── stop ─────────────────────────────────────────────────────────────

    async def stop(self) -> str:
        """Kill the held process, if any. Idempotent.

        Also aborts a start() that is still polling for readiness.
        """
        self._stop_requested.set()
        async with self._lock:
            proc, self._process = self._process, None
        if proc is not None:
            await _terminate(proc)
            logger.info("Gateway stopped (pid=%s)", proc.pid)
        self.state = SupervisorState.STOPPED
        return "stopped"

    async def shutdown(self, relay_wait: float = 2.0) -> None:
        """Host teardown: stop, then let the relay tasks drain."""
        await self.stop()
        tasks = set(self._relay_tasks)
        if not tasks:
            return
        _, pending = await asyncio.wait(tasks, timeout=relay_wait)
        for task in pending:
            task.cancel()

    async def wait_closed(self) -> int | None:
        """Block until the held process exits. Returns its exit code."""
        proc = self._process
        if proc is None:
            return None
        return await proc.wait()

    async def _discard(self, proc) -> None:
        async with self._lock:
            if self._process is proc:
                self._process = None
        await _terminate(proc)

    async def _discard_stale_handle(self) -> None:
        async with self._lock:
            stale, self._process = self._process, None
        if stale is not None:
            logger.warning("Dropping unhealthy gateway handle (pid=%s)", stale.pid)
            await _terminate(stale)


async def _relay(stream: asyncio.StreamReader, level: int, prefix: str) -> None:
    """Copy subprocess output lines to the log until the stream closes."""
    while True:
        try:
            line = await stream.readline()
        except ValueError:
            # line longer than the stream limit; the rest is still readable
            continue
        if not line:
            break
        gateway_log.log(level, "%s %s", prefix,
                        line.decode("utf-8", errors="replace").rstrip())


async def _terminate(proc, timeout: float = KILL_WAIT) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
    try:
        await asyncio.wait_for(proc.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Gateway pid=%s did not exit within %gs", proc.pid, timeout)


def _listening_pids(port: int) -> list[int]:
    """PIDs with a TCP socket on *port*, per lsof. FileNotFoundError without lsof."""
    out = subprocess.run(["lsof", "-ti", f"tcp:{port}"],
                         capture_output=True, text=True, timeout=5).stdout
    return [int(p) for p in out.split() if p.isdigit()]


def _fuser_kill(port: int) -> bool:
    try:
        result = subprocess.run(["fuser", "-k", f"{port}/tcp"],
                                capture_output=True, timeout=5)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning("fuser failed for port %d: %s", port, e)
        return False
    if result.returncode != 0:
        return False
    time.sleep(PORT_RELEASE_WAIT)
    return True


def kill_port(port: int) -> bool:
    """SIGTERM whatever listens on *port*. True if something was signalled.

    For hosts that hold no handle (a second CLI process).  Uses lsof,
    or fuser where lsof is not installed.
    """
    try:
        pids = _listening_pids(port)
    except FileNotFoundError:
        return _fuser_kill(port)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning("lsof failed for port %d: %s", port, e)
        return False

    signalled = 0
    for pid in pids:
        try:
            os.kill(pid, signal.SIGTERM)
        except ProcessLookupError:
            continue
        signalled += 1
        logger.info("Sent SIGTERM to pid %d on port %d", pid, port)
    if signalled:
        time.sleep(PORT_RELEASE_WAIT)
    return signalled > 0
