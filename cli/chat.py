"""Interactive chat: start (or reuse) the gateway, then relay each line to the agent."""
from __future__ import annotations

import asyncio
import json
import uuid

from rich.markdown import Markdown
from rich.prompt import Prompt

from core.errors import EmptyResponse, RemoteError
from core.theme import theme as _theme

from cli.helpers import console, run_host

EXIT_WORDS = ("exit", "quit", "/exit", "/quit")


def extract_reply(raw: str) -> str:
    """Pull the assistant text out of a ``call agent --json`` payload.

    Falls back to the raw output when the shape is not recognised.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return raw
    if not isinstance(data, dict):
        return raw
    result = data.get("result", data)
    if isinstance(result, dict):
        payloads = result.get("payloads")
        if isinstance(payloads, list):
            texts = [p.get("text", "") for p in payloads if isinstance(p, dict)]
            if any(texts):
                return "\n\n".join(t for t in texts if t)
        for key in ("text", "reply", "message", "output"):
            if isinstance(result.get(key), str):
                return result[key]
    return raw


def cmd_chat(agent: str = "main", session: str = ""):
    run_host(lambda host: _chat_loop(host, agent, session or f"chat-{uuid.uuid4().hex[:8]}"))


async def _chat_loop(host, agent: str, session: str):
    with console.status(f"[{_theme.muted}]Starting gateway…[/{_theme.muted}]"):
        outcome = await host.start_detailed(agent)
    if outcome.pairing_warning:
        console.print(f"  [{_theme.warning}]![/{_theme.warning}] {outcome.pairing_warning}")
    console.print(f"  [{_theme.accent}]clapp[/{_theme.accent}] · agent "
                  f"[{_theme.heading}]{agent}[/{_theme.heading}] · "
                  f"[{_theme.muted}]type exit to quit[/{_theme.muted}]\n")

    while True:
        message = await asyncio.to_thread(Prompt.ask, f"[{_theme.accent}]you[/{_theme.accent}]")
        message = (message or "").strip()
        if not message:
            continue
        if message.lower() in EXIT_WORDS:
            break

        try:
            with console.status(f"[{_theme.muted}]thinking…[/{_theme.muted}]"):
                raw = await host.invoke(agent, message, session)
        except (EmptyResponse, RemoteError) as e:
            console.print(f"  [{_theme.error}]✗[/{_theme.error}] {e}\n")
            continue
        console.print(Markdown(extract_reply(raw)))
        console.print()
