"""Resolve the ``metrics`` and ``rates`` options into typed specs."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping

from .errors import InvalidConfig
from .units import validate_unit

_ENTRY_SPLIT = re.compile(r"\s*,\s*")
_NAME_SPLIT = re.compile(r"\s*:\s*")


@dataclass(frozen=True)
class MetricSpec:
    raw_key: str
    report_key: str
    is_size_metric: bool = False


@dataclass(frozen=True)
class RateSpec:
    report_key: str
    raw_key: str


def _entries(config: str) -> List[str]:
    return [entry for entry in _ENTRY_SPLIT.split(config.strip()) if entry]


def resolve_metrics(
    config: str, size_metrics: Iterable[str], unit: str
) -> Dict[str, MetricSpec]:
    """Map raw stat names to their report names.

    Entries look like ``raw`` or ``raw:report``. Size metrics get the unit
    appended to the report name (``bytes:current_data`` -> ``current_data_MB``).
    A raw key listed twice keeps the later entry.
    """
    unit = validate_unit(unit)
    sizes = set(size_metrics)
    specs: Dict[str, MetricSpec] = {}
    for entry in _entries(config):
        parts = _NAME_SPLIT.split(entry, maxsplit=1)
        raw_key = parts[0]
        report_key = parts[1] if len(parts) > 1 and parts[1] else raw_key
        is_size = raw_key in sizes
        if is_size:
            report_key = f"{report_key}_{unit}"
        specs[raw_key] = MetricSpec(raw_key, report_key, is_size)
    return specs


def resolve_rates(config: str, allowlist: Mapping[str, str]) -> List[RateSpec]:
    specs: List[RateSpec] = []
    seen = set()
    for name in _entries(config):
        if name not in allowlist:
            raise InvalidConfig(f"invalid rate key: {name}")
        if name in seen:
            continue
        seen.add(name)
        specs.append(RateSpec(report_key=name, raw_key=allowlist[name]))
    return specs
