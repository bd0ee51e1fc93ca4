"""memcached stats collector."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..errors import ConnectionFailure, MissingAdapter
from .base import CollectorDefinition, ProbeCollector, RawSnapshot

logger = logging.getLogger("statpoll.collectors.memcached")


def _decode(value: Optional[bytes]) -> Optional[str]:
    if value is None:
        return None
    return value.decode("utf-8", errors="replace")


class MemcachedCollector(ProbeCollector):
    definition = CollectorDefinition(
        id="memcached",
        name="memcached",
        description="Server statistics from the memcached stats command.",
        default_port=11211,
        size_metrics=frozenset({"bytes", "limit_maxbytes", "bytes_read", "bytes_written"}),
        rate_keys={
            "gets_per_sec": "cmd_get",
            "sets_per_sec": "cmd_set",
            "misses_per_sec": "get_misses",
            "hits_per_sec": "get_hits",
            "evictions_per_sec": "evictions",
        },
        default_metrics=(
            "cmd_get:get_count, cmd_set:set_count, get_misses, get_hits, "
            "curr_connections:current_connections, curr_items:total_items, "
            "bytes:current_data, limit_maxbytes:max_data"
        ),
        default_rates="gets_per_sec, sets_per_sec, misses_per_sec, hits_per_sec",
        supports_self_test=True,
    )

    def __init__(self, host: str, port: Optional[int] = None, **options: Any) -> None:
        super().__init__(host, port, **options)
        self._client: Any = None
        self._errors: tuple = (OSError,)

    async def connect(self) -> None:
        try:
            import aiomcache
        except ImportError as exc:
            raise MissingAdapter("could not load the aiomcache library") from exc

        self._errors = (OSError, aiomcache.ClientException)
        self._client = aiomcache.Client(self.host, self.port, pool_size=1)
        try:
            version = await self._client.version()
        except self._errors as exc:
            raise ConnectionFailure(
                f"unable to connect to memcached on {self.identity}"
            ) from exc
        logger.debug("Connected to memcached %s on %s", _decode(version), self.identity)

    def _require_client(self) -> Any:
        if self._client is None:
            raise ConnectionFailure(f"memcached on {self.identity} is not connected")
        return self._client

    async def set(self, key: str, value: str) -> None:
        client = self._require_client()
        try:
            await client.set(key.encode(), value.encode())
        except self._errors as exc:
            raise ConnectionFailure(f"unable to write to memcached on {self.identity}") from exc

    async def get(self, key: str) -> Optional[str]:
        client = self._require_client()
        try:
            return _decode(await client.get(key.encode()))
        except self._errors as exc:
            raise ConnectionFailure(f"unable to read from memcached on {self.identity}") from exc

    async def fetch_raw_counters(self) -> RawSnapshot:
        client = self._require_client()
        try:
            stats = await client.stats()
        except self._errors as exc:
            raise ConnectionFailure(
                f"unable to retrieve stats from memcached on {self.identity}"
            ) from exc
        if not stats:
            return {}
        host_stats: Dict[str, Any] = {
            _decode(name): _decode(value) for name, value in stats.items()
        }
        return {self.identity: host_stats}

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
