"""NSX collector -- entry point.

Assembles the collection pipeline:

    Scheduler (one tick every ``intervals.default`` seconds)
        -> one asyncio task per Worker (one Worker per NSX Manager)
            -> sequential fetches through that manager's httpx.AsyncClient
            -> one batch write per cycle (InfluxDB, or stdout with --dry-run)
        -> self-monitoring counters (Prometheus scrape endpoint)

SIGINT/SIGTERM stop the scheduler; in-flight cycles finish their write
before the HTTP clients are closed.
"""
from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys

import structlog
from prometheus_client import start_http_server

from core.config import ConfigError, Settings, load_env_file, load_managers, load_settings
from core.registry import WorkerRegistry
from core.scheduler import Scheduler
from core.telemetry import CollectorMetrics
from core.worker import Worker
from models.manager import Manager
from nsx.client import NsxClient, build_http_client
from writers.base import PointWriter
from writers.console import ConsoleWriter
from writers.influx import InfluxWriter

log = logging.getLogger("nsx_collector")

SHUTDOWN_GRACE_SECONDS = 30.0
SHUTDOWN_POLL_SECONDS = 0.5


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Poll NSX Managers and write metrics to InfluxDB.")
    parser.add_argument("--config", default="configs/config.yaml", help="collector config file")
    parser.add_argument("--managers", default="configs/managers.yaml", help="managers inventory file")
    parser.add_argument("--env-file", default=".env", help="dotenv file with credentials")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="print line protocol to stdout instead of writing to InfluxDB",
    )
    return parser.parse_args(argv)


def build_log_formatter(fmt: str) -> logging.Formatter:
    """Render stdlib records as JSON or console lines.

    ``extra=`` fields (site, domain, subject) become top-level keys.
    """
    pre_chain = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if fmt == "json":
        processors = [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer(colors=False),
        ]
    return structlog.stdlib.ProcessorFormatter(foreign_pre_chain=pre_chain, processors=processors)


def configure_logging(level: str, fmt: str) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(build_log_formatter(fmt))
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, level, logging.INFO))


def build_writer(settings: Settings, dry_run: bool) -> PointWriter:
    if dry_run:
        return ConsoleWriter()
    influx = settings.influxdb
    return InfluxWriter(url=influx.url, token=influx.token, org=influx.org, bucket=influx.bucket)


async def run(
    settings: Settings,
    managers: list[Manager],
    dry_run: bool = False,
    stop: asyncio.Event | None = None,
    metrics: CollectorMetrics | None = None,
) -> None:
    if stop is None:
        stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    if metrics is None:
        metrics = CollectorMetrics()
    if settings.telemetry.enabled:
        start_http_server(settings.telemetry.port, addr=settings.telemetry.host or "0.0.0.0")
        log.info(
            "Telemetry listening on %s:%d",
            settings.telemetry.host or "0.0.0.0",
            settings.telemetry.port,
        )

    writer = build_writer(settings, dry_run)
    async with contextlib.AsyncExitStack() as stack:
        stack.push_async_callback(writer.close)
        registry = WorkerRegistry()
        for mgr in managers:
            http = await stack.enter_async_context(build_http_client(mgr))
            registry.register(
                Worker(
                    manager=mgr,
                    api=NsxClient(http, site=mgr.site),
                    writer=writer,
                    metrics=metrics,
                    slow_interval=settings.slow_interval,
                )
            )
            log.info("Manager registered: %s (%s)", mgr.site, mgr.url)

        log.info(
            "nsx-collector starting: %d manager(s), bucket=%s, interval=%ss, slow=%ss",
            len(registry),
            settings.influxdb.bucket,
            settings.interval,
            settings.slow_interval,
        )
        scheduler = Scheduler(registry=registry, interval=settings.interval)
        await scheduler.run(stop)

        # Let abandoned cycles finish their write before clients close.
        waited = 0.0
        while scheduler.inflight and waited < SHUTDOWN_GRACE_SECONDS:
            await asyncio.sleep(SHUTDOWN_POLL_SECONDS)
            waited += SHUTDOWN_POLL_SECONDS

    log.info("nsx-collector stopped")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    load_env_file(args.env_file)

    try:
        settings = load_settings(args.config, require_token=not args.dry_run)
        managers = load_managers(args.managers)
    except ConfigError as exc:
        print(f"failed to load configuration: {exc}", file=sys.stderr)
        return 1

    configure_logging(settings.log_level, settings.log_format)

    try:
        asyncio.run(run(settings, managers, dry_run=args.dry_run))
    except KeyboardInterrupt:
        print("\nShutting down.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
