"""Gateway lifecycle CLI commands."""
from __future__ import annotations

from core.theme import theme as _theme

from cli.helpers import console, run_host


def cmd_gateway(action: str = "start", agent: str = "main", force: bool = False):
    if action == "start":
        run_host(lambda host: _start_foreground(host, agent))
    elif action == "status":
        run_host(_show_status)
    elif action == "stop":
        _stop(force)
    else:
        print(f"Unknown gateway action: {action}")
        print("Available: start, stop, status")


async def _start_foreground(host, agent: str):
    """Start (or reuse) the gateway; stay attached until it exits or Ctrl+C."""
    with console.status(f"[{_theme.muted}]Starting gateway…[/{_theme.muted}]"):
        outcome = await host.start_detailed(agent)

    port = host.options.port
    if not outcome.spawned:
        console.print(f"  [{_theme.success}]✓[/{_theme.success}] Gateway already "
                      f"running on port {port}, nothing to start")
        return

    console.print(f"  [{_theme.success}]✓[/{_theme.success}] Gateway running "
                  f"(pid {host.supervisor.pid}, port {port})")
    if outcome.pairing_warning:
        console.print(f"  [{_theme.warning}]![/{_theme.warning}] {outcome.pairing_warning}")
    console.print(f"  [{_theme.muted}]Ctrl+C to stop. Output: "
                  f"{host.paths.logs_dir}/clapp.log[/{_theme.muted}]")

    code = await host.supervisor.wait_closed()
    if code is not None:
        console.print(f"  [{_theme.warning}]Gateway exited with code {code}[/{_theme.warning}]")


async def _show_status(host):
    state = await host.status()
    style = _theme.success if state == "running" else _theme.error
    console.print(f"  Gateway: [{style}]{state}[/{style}]  "
                  f"[{_theme.muted}](port {host.options.port}, "
                  f"probe {host.options.health_probe})[/{_theme.muted}]")


def _stop(force: bool):
    """A separate CLI process holds no handle; --force frees the port instead."""
    if not force:
        console.print(f"  [{_theme.muted}]No gateway handle in this process. The "
                      f"foreground `clapp gateway start` stops on Ctrl+C; use "
                      f"--force to kill whatever listens on the gateway port."
                      f"[/{_theme.muted}]")
        return

    from core.paths import Paths
    from core.settings import load_options
    from core.supervisor import kill_port

    port = load_options(Paths.from_env()).port
    if kill_port(port):
        console.print(f"  [{_theme.success}]✓[/{_theme.success}] Gateway stopped on port {port}")
    else:
        console.print(f"  [{_theme.muted}]Nothing listening on port {port}[/{_theme.muted}]")
