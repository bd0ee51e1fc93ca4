from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..errors import BadData
from ..store import SnapshotStore
from ..units import round_to

logger = logging.getLogger("statpoll.rates")

MAX_COUNTER = 2**64 - 1


class RateEngine:
    """Turns lifetime counters into per-second rates against the stored baseline."""

    def __init__(self, store: SnapshotStore) -> None:
        self.store = store

    async def compute_rate(
        self, name: str, raw_value: int, now: datetime
    ) -> Optional[float]:
        """Return the rate since the previous snapshot of ``name``.

        Returns ``None`` when no baseline exists yet. Raises ``BadData`` when
        the elapsed time is not positive or the counter went down. The new
        snapshot is stored in every case so the next run has a fresh baseline.
        """
        if not 0 <= raw_value <= MAX_COUNTER:
            raise BadData(name, f"counter value {raw_value} outside unsigned 64-bit range")

        prior = await self.store.get(name)
        await self.store.put(name, raw_value, now)

        if prior is None:
            logger.info("No baseline for %s yet, stored %s", name, raw_value)
            return None

        elapsed = (now - prior.captured_at).total_seconds()
        if elapsed <= 0:
            raise BadData(name, "cannot compute rate without positive duration")
        if raw_value < prior.value:
            raise BadData(name, "counter decreased since last observation")

        return round_to((raw_value - prior.value) / elapsed, 1)
