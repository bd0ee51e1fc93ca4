"""Sinks that receive the outcome of an invocation."""

from __future__ import annotations

import json
import logging
import sys
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional, TextIO, Union

logger = logging.getLogger("statpoll.report")

Number = Union[int, float]


class Reporter(ABC):
    @abstractmethod
    def report(self, metrics: Mapping[str, Number]) -> None:
        """Receive the final presentation metrics of a successful run."""

    @abstractmethod
    def alert(self, subject: str, body: str = "") -> None:
        """Receive a problem with the monitored service."""

    @abstractmethod
    def error(self, subject: str, body: str = "") -> None:
        """Receive a problem with the agent, its configuration or its data."""


class StreamReporter(Reporter):
    """Writes one JSON document per line to a text stream."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream or sys.stdout

    def _write(self, payload: Dict[str, Any]) -> None:
        self.stream.write(json.dumps(payload, sort_keys=True) + "\n")
        self.stream.flush()

    def report(self, metrics: Mapping[str, Number]) -> None:
        logger.info("Reporting %d metrics", len(metrics))
        self._write({"type": "report", "data": dict(metrics)})

    def alert(self, subject: str, body: str = "") -> None:
        logger.warning("Alert: %s: %s", subject, body)
        self._write({"type": "alert", "subject": subject, "body": body})

    def error(self, subject: str, body: str = "") -> None:
        logger.error("Error: %s: %s", subject, body)
        self._write({"type": "error", "subject": subject, "body": body})
