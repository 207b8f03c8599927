"""Version subcommand."""
from __future__ import annotations

import json
import shutil
import sys
from importlib.metadata import PackageNotFoundError, version

from core.theme import theme as _theme


def cmd_version(json_output: bool = False):
    """Show version, Python version, dependency versions and whether npx is on PATH."""
    from cli.helpers import console, get_version

    py_version = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"

    deps: dict[str, str] = {}
    for pkg in ("rich", "httpx", "PyYAML", "filelock", "questionary"):
        try:
            deps[pkg] = version(pkg)
        except PackageNotFoundError:
            deps[pkg] = "not installed"

    npx = shutil.which("npx") or ""

    if json_output:
        print(json.dumps({
            "version": get_version(),
            "python": py_version,
            "npx": npx,
            "dependencies": deps,
        }, indent=2))
        return

    from rich.table import Table

    console.print(f"\n  [{_theme.heading}]clapp[/{_theme.heading}]  v{get_version()}")
    console.print(f"  [{_theme.muted}]Python:[/{_theme.muted}]  {py_version}")
    npx_text = npx or f"[{_theme.error}]not found (install Node.js)[/{_theme.error}]"
    console.print(f"  [{_theme.muted}]npx:[/{_theme.muted}]     {npx_text}")

    table = Table(show_header=True, header_style=_theme.heading, box=None, padding=(0, 2))
    table.add_column("Package", style=_theme.muted)
    table.add_column("Version")
    for pkg, ver in deps.items():
        style = _theme.success if ver != "not installed" else _theme.error
        table.add_row(pkg, f"[{style}]{ver}[/{style}]")
    console.print()
    console.print(table)
    console.print()
