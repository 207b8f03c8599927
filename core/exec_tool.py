"""
core/exec_tool.py
Diagnostic shell passthrough for the host (e.g. ``npx openclaw --version``,
``where node``).

Runs whatever the user typed with the user's own privileges.  No
allowlist, only a log: every execution is appended to <logs>/exec.log
as one JSON line.

On Windows the command runs through ``cmd /C`` after switching the console
code page to UTF-8 (``chcp 65001``) so localized output decodes cleanly.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import platform
import time
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300
MAX_OUTPUT = 50_000


def _log_execution(log_path: str | None, command: str, ok: bool,
                   output: str, elapsed: float):
    """Append execution record to exec log."""
    if not log_path:
        return
    os.makedirs(os.path.dirname(log_path) or ".", exist_ok=True)
    entry = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "cmd": command,
        "ok": ok,
        "elapsed_s": round(elapsed, 2),
        "output_len": len(output),
    }
    with open(log_path, "a", encoding="utf-8") as f:
        f.write(json.dumps(entry, ensure_ascii=False) + "\n")


async def _spawn_shell(command: str) -> asyncio.subprocess.Process:
    if platform.system() == "Windows":
        return await asyncio.create_subprocess_exec(
            "cmd", "/C", f"chcp 65001 >nul && {command}",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    return await asyncio.create_subprocess_shell(
        command,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )


async def run_command(command: str, timeout: float = DEFAULT_TIMEOUT,
                      log_path: str | None = None) -> str:
    """Run *command* in the host shell.

    Returns stdout, or stderr when stdout is empty.  Launch failures and
    timeouts come back as text rather than exceptions.
    """
    start = time.time()
    try:
        proc = await _spawn_shell(command)
    except OSError as e:
        _log_execution(log_path, command, False, str(e), time.time() - start)
        logger.warning("[exec] could not launch %r: %s", command[:80], e)
        return str(e)

    try:
        stdout_b, stderr_b = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()
        elapsed = time.time() - start
        _log_execution(log_path, command, False, "TIMEOUT", elapsed)
        return f"Timed out after {timeout:g}s"

    elapsed = time.time() - start
    stdout = stdout_b.decode("utf-8", errors="replace")[:MAX_OUTPUT]
    stderr = stderr_b.decode("utf-8", errors="replace")[:MAX_OUTPUT]
    ok = proc.returncode == 0
    _log_execution(log_path, command, ok, stdout or stderr, elapsed)
    logger.debug("[exec] %r → exit %s in %.2fs", command[:80], proc.returncode, elapsed)
    return stdout if stdout else stderr
