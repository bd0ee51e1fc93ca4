from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.types import TypeDecorator

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: datetime | None, dialect: object
    ) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("UTCDateTime only accepts timezone-aware datetimes")
        return value.astimezone(timezone.utc)

    def process_result_value(
        self, value: datetime | None, dialect: object
    ) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class UnsignedCounter(TypeDecorator[int]):
    """Counter value up to 2**64 - 1, stored as decimal text."""

    impl = String(20)
    cache_ok = True

    def process_bind_param(self, value: int | None, dialect: object) -> str | None:
        if value is None:
            return None
        if not 0 <= value < 2**64:
            raise ValueError(f"counter value out of range: {value}")
        return str(value)

    def process_result_value(self, value: str | None, dialect: object) -> int | None:
        if value is None:
            return None
        return int(value)


class CounterSnapshotRow(Base):
    """Last observed value of one counter for one agent instance."""

    __tablename__ = "counter_snapshots"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[int] = mapped_column(UnsignedCounter())
    captured_at: Mapped[datetime] = mapped_column(UTCDateTime())
