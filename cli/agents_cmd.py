"""Agent credential/identity commands."""
from __future__ import annotations

from core import credentials
from core.config_store import load_api_key, read_document
from core.errors import SupervisorError
from core.paths import MAIN_AGENT, Paths
from core.theme import theme as _theme

from cli.helpers import console, fail


def cmd_agents_sync(agent_id: str, name: str = "", prompt: str = "", key: str = ""):
    """Write auth-profiles.json + agent.json for *agent_id* (and "main")."""
    paths = Paths.from_env()
    try:
        api_key = key or load_api_key(paths)
        credentials.sync_agent_auth(paths, agent_id, api_key, name or agent_id, prompt)
    except SupervisorError as e:
        fail(str(e))

    console.print(f"  [{_theme.success}]✓[/{_theme.success}] Synced '{agent_id}'"
                  + (f" and '{MAIN_AGENT}'" if agent_id != MAIN_AGENT else ""))
    console.print(f"  [{_theme.muted}]{paths.agent_dir(agent_id)}[/{_theme.muted}]")


def cmd_agents_list():
    paths = Paths.from_env()
    ids = credentials.list_agent_ids(paths)
    if not ids:
        console.print(f"  [{_theme.muted}]No agents under {paths.agents_root}[/{_theme.muted}]")
        return
    for agent_id in ids:
        try:
            usable = credentials.is_usable(read_document(paths.auth_profiles(agent_id)))
        except SupervisorError:
            usable = False
        mark = (f"[{_theme.success}]●[/{_theme.success}]" if usable
                else f"[{_theme.muted}]○[/{_theme.muted}]")
        console.print(f"  {mark} {agent_id}")
