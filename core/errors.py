"""
core/errors.py
Error kinds surfaced across the host boundary.

Every exception carries a human-readable message; the CLI (or any other
host) prints ``str(exc)`` as-is.  Pairing problems have no exception here:
they are logged and returned as warnings.
"""

from __future__ import annotations


class SupervisorError(Exception):
    """Base class for every error the supervisor reports to its host."""


class Unconfigured(SupervisorError):
    """A required credential or token is absent. User-actionable."""


class CorruptDocument(SupervisorError):
    """A config document exists but cannot be parsed."""

    def __init__(self, path: str, detail: str = ""):
        self.path = path
        self.detail = detail
        msg = f"{path} is corrupt"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class InvalidAgentId(SupervisorError):
    """Agent id is not a safe directory name."""


class ProcessSpawnFailure(SupervisorError):
    """The gateway subprocess could not be launched or died while starting."""


class ReadinessTimeout(SupervisorError):
    """Health never affirmed within the polling budget."""


class StartCancelled(SupervisorError):
    """An in-flight start() was aborted by stop()."""


class EmptyResponse(SupervisorError):
    """The gateway call finished without any output."""


class RemoteError(SupervisorError):
    """The gateway call produced error text instead of a response."""


class InvalidParams(SupervisorError, ValueError):
    """Parameters for a generic gateway call are not a JSON object."""
