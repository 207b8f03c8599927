"""
core/gateway_cli.py
Thin async wrapper around the ``openclaw gateway`` command line.

Two shapes of call:
  run(*args, timeout=…)  one-shot sub-command, output captured
  spawn(*args, env=…)    long-lived process with piped stdout/stderr

Everything else (health, pair, call) is built on these two, which keeps
the supervisor testable with a fake in place of this class.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass

from core.settings import default_gateway_command

logger = logging.getLogger(__name__)


class CommandTimeout(Exception):
    """A one-shot gateway command did not finish in time."""

    def __init__(self, argv: list[str], timeout: float):
        self.argv = argv
        self.timeout = timeout
        super().__init__(f"'{' '.join(argv[:6])}' timed out after {timeout:g}s")


@dataclass
class CommandResult:
    stdout: str
    stderr: str
    returncode: int

    @property
    def combined(self) -> str:
        return self.stdout + self.stderr


def _decode(data: bytes | None) -> str:
    return (data or b"").decode("utf-8", errors="replace")


class GatewayCommand:
    """Runs gateway sub-commands as subprocesses."""

    def __init__(self, base: list[str] | None = None):
        self.base = list(base or default_gateway_command())

    def argv(self, *args: str) -> list[str]:
        return [*self.base, *args]

    async def run(self, *args: str, timeout: float,
                  env: dict[str, str] | None = None) -> CommandResult:
        """Run a sub-command to completion.

        Raises OSError if it cannot be launched and CommandTimeout if it
        outlives *timeout* (the process is killed first).
        """
        argv = self.argv(*args)
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=_merged_env(env),
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
            raise CommandTimeout(argv, timeout) from None
        return CommandResult(_decode(stdout), _decode(stderr), proc.returncode)

    async def spawn(self, *args: str,
                    env: dict[str, str] | None = None) -> asyncio.subprocess.Process:
        """Start a long-lived sub-command with piped output. Raises OSError."""
        argv = self.argv(*args)
        logger.info("Spawning: %s", " ".join(argv))
        return await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=_merged_env(env),
        )


def _merged_env(extra: dict[str, str] | None) -> dict[str, str] | None:
    if not extra:
        return None
    env = dict(os.environ)
    env.update(extra)
    return env
