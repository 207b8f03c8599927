"""
core/theme.py
Semantic rich styles for CLI output.

NO_COLOR=1 disables colors; CLAPP_THEME=minimal drops the accent colors.

    from core.theme import theme
    console.print(f"[{theme.success}]running[/{theme.success}]")
"""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Theme:
    accent: str = "bold cyan"
    success: str = "green"
    warning: str = "yellow"
    error: str = "red"
    muted: str = "dim"
    heading: str = "bold"

    @classmethod
    def from_env(cls) -> "Theme":
        if os.environ.get("NO_COLOR"):
            # rich treats "none" as the null style
            return cls(*(["none"] * 6))
        if os.environ.get("CLAPP_THEME") == "minimal":
            return cls(accent="bold", success="bold", warning="bold")
        return cls()


theme = Theme.from_env()
