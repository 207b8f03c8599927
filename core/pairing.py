"""
core/pairing.py
One-shot pairing of the supervisor's control channel with a freshly
started gateway (``openclaw gateway pair --token T``).

A gateway paired during an earlier run rejects re-pairing, and its output
does not tell that apart from a real failure, so nothing here raises:
the problem comes back as warning text for the caller to log.
"""

from __future__ import annotations

import logging

from core.gateway_cli import CommandTimeout, GatewayCommand

logger = logging.getLogger(__name__)


async def pair(gateway: GatewayCommand, token: str,
               timeout: float = 30.0) -> str | None:
    """Pair once. Returns None on success, else a warning message."""
    try:
        result = await gateway.run("pair", "--token", token, timeout=timeout)
    except (OSError, CommandTimeout) as e:
        logger.warning("[PAIR ERR] %s", e)
        return f"Pairing failed: {e}"

    combined = result.combined.strip()
    logger.info("[PAIR] %s", combined or "(no output)")
    if result.returncode != 0:
        warning = f"Pairing exited with code {result.returncode}"
        if combined:
            warning += f": {combined.splitlines()[-1]}"
        logger.warning("[PAIR ERR] %s", warning)
        return warning
    return None
