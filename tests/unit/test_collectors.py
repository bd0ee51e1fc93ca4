import sys
import types
from decimal import Decimal

import pytest

from statpoll.errors import ConnectionFailure, MissingAdapter
from statpoll.metrics.memcached import MemcachedCollector
from statpoll.metrics.mysql import STATUS_QUERY, MySQLCollector
from statpoll.metrics.registry import CollectorRegistry, default_registry


class StubMemcacheClient:
    def __init__(self, stats=None, fail=False):
        self._stats = stats or {}
        self._fail = fail
        self.values = {}
        self.closed = False

    async def stats(self):
        if self._fail:
            raise ConnectionResetError("connection reset")
        return self._stats

    async def set(self, key, value):
        self.values[key] = value
        return True

    async def get(self, key):
        return self.values.get(key)

    async def close(self):
        self.closed = True


@pytest.mark.asyncio
@pytest.mark.parametrize("collector_cls, module", [(MemcachedCollector, "aiomcache"), (MySQLCollector, "aiomysql")])
async def test_missing_driver_raises_missing_adapter(collector_cls, module, monkeypatch):
    monkeypatch.setitem(sys.modules, module, None)

    with pytest.raises(MissingAdapter):
        await collector_cls("127.0.0.1").connect()


def test_default_ports():
    assert MemcachedCollector("cache").identity == "cache:11211"
    assert MySQLCollector("db").identity == "db:3306"
    assert MySQLCollector("db", 3307).identity == "db:3307"


@pytest.mark.asyncio
async def test_memcached_stats_are_decoded_and_keyed_by_host():
    collector = MemcachedCollector("127.0.0.1")
    client = StubMemcacheClient({b"cmd_get": b"12", b"bytes": b"2048"})
    collector._client = client

    snapshot = await collector.fetch_raw_counters()

    assert snapshot == {"127.0.0.1:11211": {"cmd_get": "12", "bytes": "2048"}}
    await collector.close()
    assert client.closed


@pytest.mark.asyncio
async def test_memcached_probe_round_trip():
    collector = MemcachedCollector("127.0.0.1")
    collector._client = StubMemcacheClient()

    await collector.set("probe", "wxyz")

    assert await collector.get("probe") == "wxyz"


@pytest.mark.asyncio
async def test_memcached_socket_errors_become_connection_failures():
    collector = MemcachedCollector("127.0.0.1")
    collector._client = StubMemcacheClient(fail=True)

    with pytest.raises(ConnectionFailure):
        await collector.fetch_raw_counters()


@pytest.mark.asyncio
async def test_unconnected_collector_cannot_fetch():
    with pytest.raises(ConnectionFailure):
        await MemcachedCollector("127.0.0.1").fetch_raw_counters()


def test_mysql_status_sums_command_counters():
    rows = [
        ("Com_insert", "5"),
        ("Com_select", "100"),
        ("Com_delete", Decimal("2")),
        ("Connections", "7"),
    ]

    status = MySQLCollector._status_map(rows)

    assert status["Com_total"] == 107
    assert status["Connections"] == "7"


def test_registry_rejects_duplicates_and_unknown_backends():
    registry = CollectorRegistry()
    registry.register(MemcachedCollector)

    with pytest.raises(ValueError):
        registry.register(MemcachedCollector)
    with pytest.raises(KeyError):
        registry.get("redis")


def test_default_registry_creates_collectors():
    registry = default_registry()

    collector = registry.create("mysql", "db", None, user="monitor")

    assert isinstance(collector, MySQLCollector)
    assert collector.options["user"] == "monitor"
    assert [cls.definition.id for cls in registry.all()] == ["memcached", "mysql"]


class StubDriverError(Exception):
    pass


def stub_aiomcache(client):
    module = types.ModuleType("aiomcache")
    module.ClientException = StubDriverError
    module.Client = lambda host, port, pool_size=1: client
    return module


class VersionlessMemcacheClient(StubMemcacheClient):
    async def version(self):
        raise ConnectionRefusedError("connection refused")


@pytest.mark.asyncio
async def test_memcached_connect_failure_becomes_connection_failure(monkeypatch):
    monkeypatch.setitem(sys.modules, "aiomcache", stub_aiomcache(VersionlessMemcacheClient()))
    collector = MemcachedCollector("127.0.0.1")

    with pytest.raises(ConnectionFailure, match="unable to connect to memcached on 127.0.0.1:11211"):
        await collector.connect()


class StubCursor:
    def __init__(self, rows, error=None):
        self.rows = rows
        self.error = error
        self.executed = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def execute(self, query):
        self.executed.append(query)
        if self.error is not None:
            raise self.error

    async def fetchall(self):
        return self.rows


class StubMySQLConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.closed = False

    def cursor(self):
        return self._cursor

    def close(self):
        self.closed = True


def stub_aiomysql(connection=None, connect_error=None):
    module = types.ModuleType("aiomysql")
    module.Error = StubDriverError
    module.connect_kwargs = {}

    async def connect(**kwargs):
        module.connect_kwargs.update(kwargs)
        if connect_error is not None:
            raise connect_error
        return connection

    module.connect = connect
    return module


@pytest.mark.asyncio
async def test_mysql_fetch_reads_global_status(monkeypatch):
    cursor = StubCursor([("Com_select", "40"), ("Com_insert", "2"), ("Connections", "9")])
    connection = StubMySQLConnection(cursor)
    driver = stub_aiomysql(connection)
    monkeypatch.setitem(sys.modules, "aiomysql", driver)
    collector = MySQLCollector("db", user="monitor", password="", socket=None)

    await collector.connect()
    snapshot = await collector.fetch_raw_counters()
    await collector.close()

    assert driver.connect_kwargs["user"] == "monitor"
    assert driver.connect_kwargs["port"] == 3306
    assert cursor.executed == [STATUS_QUERY]
    assert snapshot == {
        "db:3306": {"Com_select": "40", "Com_insert": "2", "Connections": "9", "Com_total": 42}
    }
    assert connection.closed


@pytest.mark.asyncio
async def test_mysql_connect_error_becomes_connection_failure(monkeypatch):
    monkeypatch.setitem(sys.modules, "aiomysql", stub_aiomysql(connect_error=StubDriverError("access denied")))

    with pytest.raises(ConnectionFailure, match="unable to connect to mysql on db:3306"):
        await MySQLCollector("db").connect()


@pytest.mark.asyncio
async def test_mysql_query_error_becomes_connection_failure(monkeypatch):
    cursor = StubCursor([], error=StubDriverError("server has gone away"))
    monkeypatch.setitem(sys.modules, "aiomysql", stub_aiomysql(StubMySQLConnection(cursor)))
    collector = MySQLCollector("db")
    await collector.connect()

    with pytest.raises(ConnectionFailure, match="unable to retrieve status"):
        await collector.fetch_raw_counters()
