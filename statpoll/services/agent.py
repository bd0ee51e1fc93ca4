from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, TypeVar, Union

from ..config import Settings
from ..errors import BadData, MalformedSnapshot, OperationTimeout, StatsAgentError
from ..mapping import MetricSpec, RateSpec, resolve_metrics, resolve_rates
from ..metrics.base import Collector, ProbeCollector
from ..reporting import Reporter
from ..store import SnapshotStore
from ..units import convert, validate_unit
from .rates import RateEngine
from .selftest import SelfTestValidator

logger = logging.getLogger("statpoll.agent")

Number = Union[int, float]
T = TypeVar("T")


@dataclass
class InvocationResult:
    metrics: Dict[str, Number]
    counter_errors: List[BadData] = field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_number(value: Any) -> Optional[Number]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return None


class StatsAgent:
    """Runs one collection: connect, self-test, fetch, present, rate, emit."""

    def __init__(
        self,
        collector: Collector,
        store: SnapshotStore,
        reporter: Reporter,
        settings: Settings,
        clock: Optional[Callable[[], datetime]] = None,
        validator: Optional[SelfTestValidator] = None,
    ) -> None:
        self.collector = collector
        self.reporter = reporter
        self.settings = settings
        self.timeout = settings.timeout_seconds
        self.clock = clock or _utcnow
        self.rates = RateEngine(store)
        if validator is None and collector.definition.supports_self_test:
            validator = SelfTestValidator(settings.probe_key, self.timeout)
        self.validator = validator

    async def run_once(self) -> InvocationResult:
        try:
            return await self._run()
        except StatsAgentError as exc:
            self._report_failure(exc)
            raise

    def _report_failure(self, exc: StatsAgentError) -> None:
        target = f"{self.collector.definition.name} on {self.collector.identity}"
        logger.debug("Invocation against %s aborted: %s", target, exc)
        if exc.severity == "alert":
            self.reporter.alert(f"{target}: {exc.subject}", str(exc))
        else:
            self.reporter.error(f"{target}: {exc.subject}", str(exc))

    async def _bounded(self, step: str, operation: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(operation, timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise OperationTimeout(step, self.timeout, self.collector.identity) from exc

    async def _run(self) -> InvocationResult:
        definition = self.collector.definition
        unit = validate_unit(self.settings.size_unit)
        metric_specs = resolve_metrics(
            self.settings.metrics or definition.default_metrics,
            definition.size_metrics,
            unit,
        )
        rate_specs = resolve_rates(
            self.settings.rates or definition.default_rates, definition.rate_keys
        )

        try:
            await self._bounded("connect", self.collector.connect())
            if self.validator is not None and isinstance(self.collector, ProbeCollector):
                await self.validator.validate(self.collector)

            now = self.clock()
            raw = await self._bounded("stats fetch", self.collector.fetch_raw_counters())
        finally:
            await self.collector.close()

        host_stats = raw.get(self.collector.identity) if raw else None
        if not isinstance(host_stats, Mapping) or not host_stats:
            raise MalformedSnapshot(
                f"unable to retrieve stats from {self.collector.identity}"
            )

        metrics = self._presentation_metrics(host_stats, metric_specs, unit)
        counter_errors = await self._compute_rates(host_stats, rate_specs, now, metrics)

        self.reporter.report(metrics)
        return InvocationResult(metrics=metrics, counter_errors=counter_errors)

    def _presentation_metrics(
        self,
        host_stats: Mapping[str, Any],
        specs: Mapping[str, MetricSpec],
        unit: str,
    ) -> Dict[str, Number]:
        metrics: Dict[str, Number] = {}
        for spec in specs.values():
            value = _as_number(host_stats.get(spec.raw_key))
            if value is None:
                logger.warning(
                    "Skipping %s: missing or non-numeric in stats from %s",
                    spec.raw_key,
                    self.collector.identity,
                )
                continue
            metrics[spec.report_key] = convert(value, unit) if spec.is_size_metric else value
        return metrics

    async def _compute_rates(
        self,
        host_stats: Mapping[str, Any],
        specs: List[RateSpec],
        now: datetime,
        metrics: Dict[str, Number],
    ) -> List[BadData]:
        errors: List[BadData] = []
        for spec in specs:
            try:
                raw_value = _as_number(host_stats.get(spec.raw_key))
                if raw_value is None:
                    raise BadData(spec.raw_key, f"counter missing from stats for {spec.report_key}")
                rate = await self.rates.compute_rate(spec.raw_key, int(raw_value), now)
            except BadData as exc:
                errors.append(exc)
                self.reporter.error(f"{spec.report_key}: {exc.subject}", str(exc))
                continue
            if rate is not None:
                metrics[spec.report_key] = rate
        return errors
