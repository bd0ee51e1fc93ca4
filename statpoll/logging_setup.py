"""Logging setup for the command-line agent."""

from __future__ import annotations

import logging


def configure_logging(level: str = "WARNING") -> None:
    """Send agent logs to stderr; stdout is reserved for reports."""

    root = logging.getLogger()
    root.setLevel(level.upper())

    if not any(isinstance(handler, logging.StreamHandler) for handler in root.handlers):
        console = logging.StreamHandler()
        console.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        root.addHandler(console)
