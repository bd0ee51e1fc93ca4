"""MySQL global status collector."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..errors import ConnectionFailure, MissingAdapter
from .base import Collector, CollectorDefinition, RawSnapshot

logger = logging.getLogger("statpoll.collectors.mysql")

STATUS_QUERY = "SHOW /*!50002 GLOBAL */ STATUS"
COMMAND_PREFIX = "Com_"
TOTAL_COMMANDS = "Com_total"


class MySQLCollector(Collector):
    definition = CollectorDefinition(
        id="mysql",
        name="MySQL",
        description="Query counters and connection stats from SHOW GLOBAL STATUS.",
        default_port=3306,
        size_metrics=frozenset({"Bytes_received", "Bytes_sent"}),
        rate_keys={
            "insert": "Com_insert",
            "select": "Com_select",
            "update": "Com_update",
            "delete": "Com_delete",
            "total": TOTAL_COMMANDS,
        },
        default_metrics="Connections:connections, Max_used_connections:max_used_connections",
        default_rates="insert, select, update, delete, total",
    )

    def __init__(self, host: str, port: Optional[int] = None, **options: Any) -> None:
        super().__init__(host, port, **options)
        self._conn: Any = None
        self._errors: tuple = (OSError,)

    async def connect(self) -> None:
        try:
            import aiomysql
        except ImportError as exc:
            raise MissingAdapter("could not load the aiomysql library") from exc

        self._errors = (OSError, aiomysql.Error)
        try:
            self._conn = await aiomysql.connect(
                host=self.host,
                port=self.port,
                user=self.options.get("user") or "root",
                password=self.options.get("password") or "",
                unix_socket=self.options.get("socket"),
                connect_timeout=self.options.get("connect_timeout"),
            )
        except self._errors as exc:
            raise ConnectionFailure(f"unable to connect to mysql on {self.identity}") from exc

    async def fetch_raw_counters(self) -> RawSnapshot:
        if self._conn is None:
            raise ConnectionFailure(f"mysql on {self.identity} is not connected")
        try:
            async with self._conn.cursor() as cursor:
                await cursor.execute(STATUS_QUERY)
                rows = await cursor.fetchall()
        except self._errors as exc:
            raise ConnectionFailure(
                f"unable to retrieve status from mysql on {self.identity}"
            ) from exc
        if not rows:
            return {}
        return {self.identity: self._status_map(rows)}

    @staticmethod
    def _status_map(rows: Any) -> Dict[str, Any]:
        status: Dict[str, Any] = {}
        total = 0
        for name, value in rows:
            status[name] = value
            if name.startswith(COMMAND_PREFIX):
                try:
                    total += int(value)
                except (TypeError, ValueError):
                    logger.warning("Ignoring non-integer command counter %s=%r", name, value)
        status[TOTAL_COMMANDS] = total
        return status

    async def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
