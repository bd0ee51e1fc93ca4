from __future__ import annotations

import asyncio
import logging
import random
import string
from typing import Optional

from ..errors import OperationTimeout, SelfTestFailure
from ..metrics.base import ProbeCollector

logger = logging.getLogger("statpoll.selftest")

VALUE_CHARS = string.ascii_lowercase


class SelfTestValidator:
    """Write a random probe through the connection and read it back."""

    def __init__(
        self,
        key: str,
        timeout: float,
        rng: Optional[random.Random] = None,
        length: int = 4,
    ) -> None:
        self.key = key
        self.timeout = timeout
        self.rng = rng or random.SystemRandom()
        self.length = length

    def probe_value(self) -> str:
        return "".join(self.rng.choice(VALUE_CHARS) for _ in range(self.length))

    async def validate(self, collector: ProbeCollector) -> None:
        expected = self.probe_value()
        try:
            await asyncio.wait_for(collector.set(self.key, expected), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise OperationTimeout("self-test write", self.timeout, collector.identity) from exc
        try:
            actual = await asyncio.wait_for(collector.get(self.key), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise OperationTimeout("self-test read", self.timeout, collector.identity) from exc

        if actual != expected:
            raise SelfTestFailure(
                f"bad data from {collector.host}, expected {expected} but got {actual}"
            )
        logger.debug("Self-test on %s passed with %s", collector.identity, expected)
