"""API key and gateway-config backup commands."""
from __future__ import annotations

import time

import questionary

from core.config_store import load_api_key, save_api_key
from core.errors import SupervisorError
from core.paths import Paths
from core.theme import theme as _theme

from cli.helpers import console, fail, mask_secret


def cmd_config(action: str, value: str = "", version: int = -1):
    paths = Paths.from_env()
    try:
        if action == "set-key":
            _set_key(paths, value)
        elif action == "show-key":
            key = load_api_key(paths)
            if key:
                console.print(f"  API key: {mask_secret(key)}")
            else:
                console.print(f"  [{_theme.muted}]No API key saved[/{_theme.muted}]")
        elif action == "history":
            _history(paths)
        elif action == "rollback":
            _rollback(paths, version)
        else:
            print(f"Unknown config action: {action}")
    except SupervisorError as e:
        fail(str(e))


def _set_key(paths: Paths, value: str):
    key = value
    if not key:
        key = questionary.password("Anthropic API key:").ask()
        if key is None:  # Ctrl+C
            return
    if not key.strip():
        fail("API key is empty")
    save_api_key(paths, key)
    console.print(f"  [{_theme.success}]✓[/{_theme.success}] Saved to {paths.settings_file}")


def _history(paths: Paths):
    from core.config_backup import history

    entries = history(paths.backups_dir, paths.gateway_config)
    if not entries:
        console.print(f"  [{_theme.muted}]No backups of {paths.gateway_config}[/{_theme.muted}]")
        return

    from rich.table import Table
    tbl = Table(box=None, padding=(0, 1), show_header=True, header_style=_theme.heading)
    tbl.add_column("#", justify="right")
    tbl.add_column("When")
    tbl.add_column("Backup")
    tbl.add_column("Reason", style=_theme.muted)
    n = len(entries)
    for i, entry in enumerate(entries):
        when = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(entry.get("timestamp", 0)))
        tbl.add_row(str(i - n), when, entry.get("file", "?"), entry.get("reason", ""))
    console.print(tbl)


def _rollback(paths: Paths, version: int):
    from core.config_backup import rollback

    if rollback(paths.backups_dir, paths.gateway_config, version):
        console.print(f"  [{_theme.success}]✓[/{_theme.success}] Restored "
                      f"{paths.gateway_config} (version {version})")
    else:
        fail(f"No backup at version {version}")
