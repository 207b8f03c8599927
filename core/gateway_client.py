"""
core/gateway_client.py
Control-channel calls against a running gateway.

    invoke(agent_id, message, session_key)   → agent reply (raw stdout)
    call_method(method, json_params)         → raw stdout of any RPC

Both read the gateway token first; without it nothing is dispatched.
Output is classified as:

    stdout non-empty              → success, stdout returned
    stdout empty, stderr empty    → EmptyResponse
    stdout empty, stderr present  → RemoteError(stderr)
"""

from __future__ import annotations

import json
import logging
import time

from core.errors import EmptyResponse, InvalidParams, RemoteError
from core.gateway_cli import CommandResult, CommandTimeout, GatewayCommand
from core.paths import MAIN_AGENT, Paths
from core.tokens import read_gateway_token

logger = logging.getLogger(__name__)

DEFAULT_CALL_TIMEOUT_MS = 130_000
# headroom on top of the gateway's own timeout before the subprocess is killed
PROCESS_GRACE_S = 10.0


def classify(result: CommandResult) -> str:
    stdout = result.stdout.strip()
    stderr = result.stderr.strip()
    if stdout:
        return stdout
    if stderr:
        raise RemoteError(stderr)
    raise EmptyResponse("Empty response from gateway")


class GatewayClient:

    def __init__(self, paths: Paths, gateway: GatewayCommand,
                 call_timeout_ms: int = DEFAULT_CALL_TIMEOUT_MS, clock=time.time):
        self.paths = paths
        self.gateway = gateway
        self.call_timeout_ms = call_timeout_ms
        self._clock = clock

    def idempotency_key(self, session_key: str) -> str:
        return f"{session_key}-{int(self._clock() * 1000)}"

    async def invoke(self, agent_id: str, message: str, session_key: str,
                     system_prompt: str | None = None) -> str:
        """Send *message* to the agent and return its reply verbatim.

        The gateway routes on its own session key ("main"); the caller's
        session key only feeds the idempotency key.  ``agent_id`` and
        ``system_prompt`` are applied through the identity records
        (sync_agent_auth), not per request.
        """
        token = read_gateway_token(self.paths)
        params = {
            "message": message,
            "sessionKey": MAIN_AGENT,
            "idempotencyKey": self.idempotency_key(session_key),
            "deliver": False,
        }
        logger.info("[invoke] agent=%s session=%s chars=%d%s", agent_id, session_key,
                    len(message), " (+system prompt)" if system_prompt else "")
        return await self._call("agent", params, token)

    async def call_method(self, method: str, json_params: str) -> str:
        """Invoke an arbitrary gateway method with a JSON-object parameter string."""
        token = read_gateway_token(self.paths)
        try:
            params = json.loads(json_params)
        except json.JSONDecodeError as e:
            raise InvalidParams(f"params are not valid JSON: {e}") from e
        if not isinstance(params, dict):
            raise InvalidParams(
                f"params must be a JSON object, got {type(params).__name__}")
        return await self._call(method, params, token)

    async def _call(self, method: str, params: dict, token: str) -> str:
        args = [
            "call", method,
            "--json",
            "--expect-final",
            "--timeout", str(self.call_timeout_ms),
            "--token", token,
            "--params", json.dumps(params, ensure_ascii=False),
        ]
        timeout = self.call_timeout_ms / 1000 + PROCESS_GRACE_S
        try:
            result = await self.gateway.run(*args, timeout=timeout)
        except CommandTimeout as e:
            raise RemoteError(f"Gateway call '{method}' timed out after {e.timeout:g}s") from e
        except OSError as e:
            raise RemoteError(f"Could not run gateway call '{method}': {e}") from e
        return classify(result)
