from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional


@dataclass(frozen=True)
class CollectorDefinition:
    """Declarative definition of a backend collector."""

    id: str
    name: str
    description: str
    default_port: int
    size_metrics: FrozenSet[str] = frozenset()
    rate_keys: Mapping[str, str] = field(default_factory=dict)  # rate name -> raw counter
    default_metrics: str = ""
    default_rates: str = ""
    supports_self_test: bool = False


RawSnapshot = Dict[str, Dict[str, Any]]  # server identity -> stat name -> value


class Collector(ABC):
    """Abstract base class for backend collectors.

    Collectors do not bound their own calls; the agent wraps every coroutine
    with its configured timeout.
    """

    definition: CollectorDefinition

    def __init__(self, host: str, port: Optional[int] = None, **options: Any) -> None:
        self.host = host
        self.port = port if port is not None else self.definition.default_port
        self.options = options

    @property
    def identity(self) -> str:
        return f"{self.host}:{self.port}"

    @abstractmethod
    async def connect(self) -> None:
        """Open the backend connection."""

    @abstractmethod
    async def fetch_raw_counters(self) -> RawSnapshot:
        """Return raw stats keyed by server identity."""

    @abstractmethod
    async def close(self) -> None:
        """Release the backend connection."""


class ProbeCollector(Collector):
    """Collector for backends with a writable key space."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the value stored under ``key``."""
