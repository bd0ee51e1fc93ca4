"""Error hierarchy for a single agent invocation.

Each error carries a ``severity``: ``alert`` for connectivity and integrity
problems on the monitored service, ``error`` for problems with the agent,
its configuration or the data it received.
"""

from __future__ import annotations

__all__ = [
    "StatsAgentError",
    "MissingAdapter",
    "ConnectionFailure",
    "OperationTimeout",
    "SelfTestFailure",
    "MalformedSnapshot",
    "BadData",
    "InvalidConfig",
]


class StatsAgentError(Exception):
    """Base error for agent invocations."""

    severity = "error"
    subject = "statpoll error"


class MissingAdapter(StatsAgentError):
    """The backend driver library could not be imported."""

    subject = "missing library"


class ConnectionFailure(StatsAgentError):
    """The backend connection could not be established or used."""

    severity = "alert"
    subject = "connection failed"


class OperationTimeout(StatsAgentError):
    """A bounded backend operation exceeded its deadline."""

    severity = "alert"
    subject = "timeout"

    def __init__(self, step: str, timeout: float, target: str) -> None:
        self.step = step
        self.timeout = timeout
        self.target = target
        super().__init__(
            f"{step} on {target} failed to respond within {timeout} seconds"
        )


class SelfTestFailure(StatsAgentError):
    """The write/read probe did not round-trip."""

    severity = "alert"
    subject = "self-test failed"


class MalformedSnapshot(StatsAgentError):
    """The stats response is missing the expected host/stat structure."""

    subject = "malformed stats"


class BadData(StatsAgentError):
    """A counter cannot produce a valid rate for this invocation."""

    subject = "bad data"

    def __init__(self, counter: str, message: str) -> None:
        self.counter = counter
        super().__init__(f"{counter}: {message}")


class InvalidConfig(StatsAgentError):
    """A configured rate, metric or unit is not recognised."""

    subject = "invalid configuration"
