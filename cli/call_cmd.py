"""One-shot control-channel and diagnostic commands."""
from __future__ import annotations

from cli.helpers import run_host


def cmd_call(method: str, params: str = "{}"):
    """Invoke any gateway method; prints the raw JSON reply."""
    print(run_host(lambda host: host.call_method(method, params)))


def cmd_invoke(message: str, agent: str = "main", session: str = "cli"):
    print(run_host(lambda host: host.invoke(agent, message, session)))


def cmd_exec(command: str):
    """Run a host shell command (diagnostics) and print its output."""
    print(run_host(lambda host: host.run_command(command)), end="")
