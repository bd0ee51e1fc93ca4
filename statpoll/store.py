"""Snapshot persistence between agent invocations."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .models import CounterSnapshotRow

logger = logging.getLogger("statpoll.store")


@dataclass(frozen=True)
class CounterSnapshot:
    name: str
    value: int
    captured_at: datetime


class SnapshotStore(ABC):
    """Keyed store holding the last snapshot of each counter."""

    @abstractmethod
    async def get(self, name: str) -> Optional[CounterSnapshot]:
        """Return the stored snapshot for ``name``, if any."""

    @abstractmethod
    async def put(self, name: str, value: int, captured_at: datetime) -> None:
        """Replace the stored snapshot for ``name``."""


def instance_namespace(
    backend: str, host: str, port: int, instance: Optional[str] = None
) -> str:
    if instance:
        return instance
    return f"{backend}@{host}:{port}"


class SQLSnapshotStore(SnapshotStore):
    """SQLAlchemy-backed store. Keys are prefixed with the instance namespace."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        namespace: str,
    ) -> None:
        if not namespace:
            raise ValueError("namespace must not be empty")
        self.session_factory = session_factory
        self.namespace = namespace

    def _key(self, name: str) -> str:
        return f"{self.namespace}/{name}"

    async def get(self, name: str) -> Optional[CounterSnapshot]:
        async with self.session_factory() as session:
            row = await session.get(CounterSnapshotRow, self._key(name))
        if row is None:
            return None
        return CounterSnapshot(name=name, value=row.value, captured_at=row.captured_at)

    async def put(self, name: str, value: int, captured_at: datetime) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                await session.merge(
                    CounterSnapshotRow(
                        key=self._key(name), value=value, captured_at=captured_at
                    )
                )
        logger.debug("Stored %s=%s at %s", self._key(name), value, captured_at.isoformat())
