"""Shared utilities for CLI modules."""
from __future__ import annotations

import asyncio
import os
import re
import sys

from rich.console import Console

from core.errors import SupervisorError
from core.theme import theme as _theme

console = Console()


def get_version() -> str:
    """Installed package version, else pyproject.toml, else '0.1.0'."""
    from importlib.metadata import PackageNotFoundError, version
    try:
        return version("clapp")
    except PackageNotFoundError:
        pass

    pyproject = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
                             "pyproject.toml")
    if os.path.exists(pyproject):
        with open(pyproject) as f:
            for line in f:
                if line.strip().startswith("version"):
                    m = re.search(r'"([^"]+)"', line)
                    if m:
                        return m.group(1)
    return "0.1.0"


def mask_secret(value: str) -> str:
    if not value:
        return ""
    if len(value) <= 12:
        return "***"
    return value[:6] + "..." + value[-4:]


def fail(message: str, code: int = 1):
    """Print one error line and exit."""
    console.print(f"  [{_theme.error}]✗[/{_theme.error}] {message}")
    sys.exit(code)


def run_host(coro_fn):
    """Run ``coro_fn(host)`` with a fresh SupervisorHost, mapping errors to exit 1."""
    from core.host import SupervisorHost

    async def _main():
        async with SupervisorHost() as host:
            return await coro_fn(host)

    try:
        return asyncio.run(_main())
    except SupervisorError as e:
        fail(str(e))
    except ValueError as e:
        fail(str(e))
