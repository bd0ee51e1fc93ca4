"""Pytest unit test fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import pytest

from statpoll.config import Settings
from statpoll.db import build_engine, build_session_factory, init_db
from statpoll.metrics.base import CollectorDefinition, ProbeCollector, RawSnapshot
from statpoll.reporting import Reporter
from statpoll.store import SQLSnapshotStore

START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeCollector(ProbeCollector):
    """In-memory stand-in for a cache server."""

    definition = CollectorDefinition(
        id="fake",
        name="fake cache",
        description="Test collector.",
        default_port=11211,
        size_metrics=frozenset({"bytes"}),
        rate_keys={"gets_per_sec": "cmd_get", "sets_per_sec": "cmd_set"},
        default_metrics="cmd_get:get_count, bytes:current_data",
        default_rates="gets_per_sec",
        supports_self_test=True,
    )

    def __init__(self, host: str = "127.0.0.1", port: Optional[int] = None, **options: Any) -> None:
        super().__init__(host, port, **options)
        self.stats: Dict[str, Any] = {}
        self.keys: Dict[str, str] = {}
        self.read_override: Optional[str] = None
        self.calls: List[str] = []
        self.closed = False

    async def connect(self) -> None:
        self.calls.append("connect")

    async def set(self, key: str, value: str) -> None:
        self.calls.append("set")
        self.keys[key] = value

    async def get(self, key: str) -> Optional[str]:
        self.calls.append("get")
        if self.read_override is not None:
            return self.read_override
        return self.keys.get(key)

    async def fetch_raw_counters(self) -> RawSnapshot:
        self.calls.append("fetch")
        return {self.identity: dict(self.stats)}

    async def close(self) -> None:
        self.closed = True


class RecordingReporter(Reporter):
    def __init__(self) -> None:
        self.reports: List[Dict[str, Any]] = []
        self.alerts: List[Tuple[str, str]] = []
        self.errors: List[Tuple[str, str]] = []

    def report(self, metrics):
        self.reports.append(dict(metrics))

    def alert(self, subject, body=""):
        self.alerts.append((subject, body))

    def error(self, subject, body=""):
        self.errors.append((subject, body))


class FakeClock:
    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture()
def state_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'state' / 'snapshots.db'}"


@pytest.fixture()
async def session_factory(state_url):
    engine = build_engine(state_url)
    await init_db(engine)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture()
def store(session_factory):
    return SQLSnapshotStore(session_factory, "fake@127.0.0.1:11211")


@pytest.fixture()
def settings(state_url):
    return Settings(state_url=state_url)


@pytest.fixture()
def collector():
    return FakeCollector()


@pytest.fixture()
def reporter():
    return RecordingReporter()


@pytest.fixture()
def clock():
    return FakeClock()
