"""Command-line entry point: run one collection and exit."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from .config import Settings
from .db import build_engine, build_session_factory, init_db
from .errors import StatsAgentError
from .logging_setup import configure_logging
from .metrics.registry import CollectorRegistry, default_registry
from .reporting import Reporter, StreamReporter
from .services.agent import StatsAgent
from .store import SQLSnapshotStore, instance_namespace

logger = logging.getLogger("statpoll.main")


def build_parser(registry: CollectorRegistry) -> argparse.ArgumentParser:
    backends = [collector.definition.id for collector in registry.all()]
    parser = argparse.ArgumentParser(
        prog="statpoll",
        description="Collect stats from memcached or MySQL and compute per-second rates.",
    )
    parser.add_argument("backend", nargs="?", choices=backends, help="Collector to run")
    parser.add_argument("--host", help="The host to monitor")
    parser.add_argument("--port", type=int, help="Service port")
    parser.add_argument("--probe-key", dest="probe_key", help="Key written and read by the self-test")
    parser.add_argument("--timeout", dest="timeout_seconds", type=float, help="Per-operation timeout in seconds")
    parser.add_argument("--units", dest="size_unit", help="Size unit for byte stats: B, KB, MB, GB")
    parser.add_argument("--metrics", help="Comma-separated raw[:report] stats")
    parser.add_argument("--rates", help="Comma-separated rate names")
    parser.add_argument("--instance", help="Snapshot namespace override")
    parser.add_argument("--user", help="MySQL user")
    parser.add_argument("--password", help="MySQL password")
    parser.add_argument("--socket", help="MySQL unix socket")
    parser.add_argument("--state-url", dest="state_url", help="SQLAlchemy URL of the snapshot store")
    parser.add_argument("--log-level", dest="log_level", help="Logging level")
    return parser


def settings_from_args(args: argparse.Namespace, base: Optional[Settings] = None) -> Settings:
    overrides: Dict[str, Any] = {
        key: value for key, value in vars(args).items() if value is not None
    }
    settings = base or Settings()
    if not overrides:
        return settings
    # Re-validate so CLI values go through the same checks as env values.
    return Settings(**{**settings.model_dump(), **overrides})


async def run_invocation(
    settings: Settings,
    reporter: Reporter,
    registry: Optional[CollectorRegistry] = None,
) -> int:
    registry = registry or default_registry()
    try:
        collector = registry.create(
            settings.backend,
            settings.host,
            settings.port,
            user=settings.user,
            password=settings.password,
            socket=settings.socket,
            connect_timeout=settings.timeout_seconds,
        )
    except KeyError as exc:
        reporter.error("invalid configuration", str(exc))
        return 1
    namespace = instance_namespace(
        settings.backend, collector.host, collector.port, settings.instance
    )

    engine: Optional[AsyncEngine] = None
    try:
        engine = build_engine(settings.state_url, echo=settings.sqlalchemy_echo)
        await init_db(engine)
        store = SQLSnapshotStore(build_session_factory(engine), namespace)
        agent = StatsAgent(collector, store, reporter, settings)
        await agent.run_once()
    except StatsAgentError as exc:
        logger.info("Invocation for %s aborted: %s", namespace, exc)
        return 1
    except (SQLAlchemyError, OSError) as exc:
        logger.exception("Snapshot store failure for %s", namespace)
        reporter.error("snapshot store failure", f"{type(exc).__name__}: {exc}")
        return 1
    finally:
        if engine is not None:
            await engine.dispose()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    registry = default_registry()
    args = build_parser(registry).parse_args(argv)
    settings = settings_from_args(args)
    configure_logging(settings.log_level)
    return asyncio.run(run_invocation(settings, StreamReporter(), registry))


if __name__ == "__main__":
    sys.exit(main())
