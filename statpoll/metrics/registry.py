from collections import OrderedDict
from typing import Any, Iterable, Optional, Type

from .base import Collector


class CollectorRegistry:
    """Registry of collector classes keyed by backend id."""

    def __init__(self) -> None:
        self._collectors: "OrderedDict[str, Type[Collector]]" = OrderedDict()

    def register(self, collector_cls: Type[Collector]) -> None:
        definition = collector_cls.definition
        if definition.id in self._collectors:
            raise ValueError(f"Collector '{definition.id}' is already registered.")
        self._collectors[definition.id] = collector_cls

    def all(self) -> Iterable[Type[Collector]]:
        return self._collectors.values()

    def get(self, backend: str) -> Type[Collector]:
        if backend not in self._collectors:
            raise KeyError(f"Collector '{backend}' is not registered.")
        return self._collectors[backend]

    def create(self, backend: str, host: str, port: Optional[int] = None, **options: Any) -> Collector:
        return self.get(backend)(host, port, **options)


def default_registry() -> CollectorRegistry:
    from .memcached import MemcachedCollector
    from .mysql import MySQLCollector

    registry = CollectorRegistry()
    registry.register(MemcachedCollector)
    registry.register(MySQLCollector)
    return registry
