"""
core/health.py: HealthProbe: is a gateway reachable right now?

The supervisor only asks one question, ``await probe.check()``, so the
way the answer is obtained can change without touching its state machine.

  CliHealthProbe   ``openclaw gateway health``; healthy if the affirmative
                   marker appears (case-insensitive) in stdout or stderr.
                   A text heuristic: best effort, not a status contract.
  HttpHealthProbe  GET http://127.0.0.1:<port>/health → 200.

A probe never raises: any failure to ask counts as "not healthy".
"""

from __future__ import annotations

import abc
import logging

import httpx

from core.gateway_cli import CommandTimeout, GatewayCommand

logger = logging.getLogger(__name__)


class HealthProbe(abc.ABC):
    """Single bounded liveness query."""

    @abc.abstractmethod
    async def check(self) -> bool:
        """Return True if a gateway is reachable and healthy."""


class CliHealthProbe(HealthProbe):

    def __init__(self, gateway: GatewayCommand, marker: str = "ok",
                 timeout: float = 15.0):
        self.gateway = gateway
        self.marker = marker.lower()
        self.timeout = timeout

    async def check(self) -> bool:
        try:
            result = await self.gateway.run("health", timeout=self.timeout)
        except (OSError, CommandTimeout) as e:
            logger.debug("[health] probe failed: %s", e)
            return False
        healthy = (self.marker in result.stdout.lower()
                   or self.marker in result.stderr.lower())
        logger.debug("[health] cli probe → %s", "healthy" if healthy else "down")
        return healthy


class HttpHealthProbe(HealthProbe):

    def __init__(self, port: int, host: str = "127.0.0.1", timeout: float = 3.0,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.url = f"http://{host}:{port}/health"
        self.timeout = timeout
        self._transport = transport

    async def check(self) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self.timeout,
                                         transport=self._transport) as client:
                resp = await client.get(self.url)
        except httpx.HTTPError as e:
            logger.debug("[health] %s unreachable: %s", self.url, e)
            return False
        logger.debug("[health] %s → HTTP %d", self.url, resp.status_code)
        return resp.status_code == 200


def build_probe(options, gateway: GatewayCommand) -> HealthProbe:
    """Probe selected by ``options.health_probe``."""
    if options.health_probe == "http":
        return HttpHealthProbe(options.port, timeout=min(options.health_timeout, 5.0))
    return CliHealthProbe(gateway, marker=options.health_marker,
                          timeout=options.health_timeout)
