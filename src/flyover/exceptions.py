"""Exception markers for flyover host boundaries."""

from __future__ import annotations


class NeverRaise(RuntimeError):
    """Sentinel exception for paths that callers must never drive.

    The core absorbs every recoverable condition itself; this is only raised
    when a host hands the engine something it has no meaning for (a command
    without a payload, a formatter name that resolves to nothing).
    """

    def __init__(self, message: str, *, env: dict[str, object] | None = None):
        super().__init__(message)
        self.reason = message
        self.env = dict(env or {})

    @property
    def env_payload(self) -> dict[str, str]:
        return {str(key): str(value) for key, value in self.env.items()}


class NeverThrown(NeverRaise):
    """Alias for NeverRaise used by the explicit never() marker."""
