"""Command line entry point: ``http-checker run``."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Optional, Sequence

import httpx
import structlog

from .config import ConfigStore, RunOptions, find_config_file, parse_bool
from .engine import Engine
from .errors import ConfigError
from .logging_setup import configure_logging
from .metrics import Metrics, serve_metrics
from .persistence import CsvSink
from .watcher import ConfigFileWatcher


logger = structlog.get_logger(__name__)


def _parse_bool(value: str) -> bool:
    try:
        return parse_bool(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    defaults = RunOptions.from_env()
    parser = argparse.ArgumentParser(prog="http-checker", description="Synthetic HTTP monitoring agent")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Periodically perform http checks against the configured targets")
    run.add_argument("--config", default=None, help="Path to YAML/JSON config (default: search ./config)")
    run.add_argument(
        "-p",
        "--period",
        type=int,
        default=defaults.period,
        help="Seconds between check cycles; also the http request timeout",
    )
    run.add_argument(
        "--persist",
        nargs="?",
        const=True,
        type=_parse_bool,
        default=defaults.persist,
        help="Persist measurements to per-target csv files",
    )
    run.add_argument("--file", default=defaults.file_prefix, help="Prefix of the csv files results are written to")
    run.add_argument("--metrics-port", type=int, default=defaults.metrics_port, help="Port of the /metrics endpoint (0 disables)")
    run.add_argument(
        "--watch-interval",
        type=float,
        default=defaults.watch_interval,
        help="Seconds between config file change checks",
    )
    run.add_argument("--log-level", default=defaults.log_level, help="Logging level (INFO, WARNING, ...)")
    run.add_argument(
        "--json-logs",
        action=argparse.BooleanOptionalAction,
        default=defaults.json_logs,
        help="Render logs as JSON (default: auto-detect Kubernetes)",
    )
    run.add_argument("--once", action="store_true", help="Run one check cycle and exit")
    return parser


def options_from_args(args: argparse.Namespace) -> RunOptions:
    if args.period <= 0:
        raise ConfigError("--period must be a positive number of seconds")
    return RunOptions(
        period=args.period,
        persist=bool(args.persist),
        file_prefix=args.file,
        metrics_port=args.metrics_port,
        watch_interval=args.watch_interval,
        log_level=args.log_level,
        json_logs=args.json_logs,
    )


async def run_agent(config_path: Path, options: RunOptions, *, once: bool = False) -> int:
    store = ConfigStore(config_path)
    try:
        config = store.load()
    except ConfigError as exc:
        logger.error("could not load config", path=str(config_path), error=str(exc))
        return 1

    metrics = Metrics(config.placeholder_names)
    if options.metrics_port > 0:
        serve_metrics(options.metrics_port, metrics.registry)

    sink = CsvSink(options.file_prefix) if options.persist else None
    limits = httpx.Limits(max_keepalive_connections=config.max_pool_size)
    watcher = ConfigFileWatcher(config_path, options.watch_interval)
    watcher.subscribe(store.reload)

    async with httpx.AsyncClient(timeout=float(options.period), limits=limits) as client:
        engine = Engine(store, client, metrics, period=options.period, sink=sink)
        engine.install_signal_handlers()
        if not once:
            await watcher.start()
        try:
            await engine.run(once=once)
        finally:
            await watcher.stop()
            if sink is not None:
                sink.close()
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        options = options_from_args(args)
    except ConfigError as exc:
        parser.error(str(exc))

    configure_logging(options.log_level, options.json_logs)

    try:
        config_path = find_config_file(args.config)
    except ConfigError as exc:
        logger.error("could not find config", error=str(exc))
        return 1

    logger.info(
        "starting http-checker",
        config=str(config_path),
        period=options.period,
        persist=options.persist,
        file=options.file_prefix,
    )
    return asyncio.run(run_agent(config_path, options, once=bool(args.once)))
