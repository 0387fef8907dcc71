"""Ticking scheduler that fans out one probe per placeholder tuple."""

from __future__ import annotations

import asyncio
import signal
import time
from enum import Enum
from typing import Any, Optional, Sequence

import httpx
import structlog

from .config import ConfigStore, TargetConfig
from .errors import PersistenceError
from .labels import expand
from .metrics import BASE_LABELS, Metrics
from .observation import Observation, Resolve, join_ips, observe
from .persistence import CsvSink
from .resolver import resolve


logger = structlog.get_logger(__name__)

SHUTDOWN_SIGNALS = ("SIGINT", "SIGTERM", "SIGHUP", "SIGQUIT")


class EngineState(str, Enum):
    IDLE = "idle"
    TICKING = "ticking"
    CYCLE_RUNNING = "cycle_running"
    SHUTTING_DOWN = "shutting_down"


class Engine:
    """Runs one probe cycle per period until stopped.

    Each cycle holds the config lock from snapshot to join, dispatches one
    task per placeholder tuple through a semaphore sized to
    ``max_pool_size`` and records the cycle duration. Cycles never overlap.
    ``stop`` cancels the wait for the next tick but lets a running cycle
    finish.
    """

    def __init__(
        self,
        store: ConfigStore,
        client: httpx.AsyncClient,
        metrics: Metrics,
        *,
        period: float,
        sink: Optional[CsvSink] = None,
        resolver: Resolve = resolve,
    ):
        if period <= 0:
            raise ValueError("period must be positive")
        self.store = store
        self.client = client
        self.metrics = metrics
        self.period = float(period)
        self.sink = sink
        self.resolver = resolver
        self.state = EngineState.IDLE
        self.cycles = 0
        self._stopping = asyncio.Event()
        store.on_change(self._on_config_change)

    @property
    def stopping(self) -> bool:
        return self._stopping.is_set()

    def _transition(self, state: EngineState) -> None:
        if self.state is EngineState.SHUTTING_DOWN:
            return
        self.state = state

    def _on_config_change(self, config: TargetConfig) -> None:
        label_names = list(self.metrics.label_names[len(BASE_LABELS):])
        if list(config.placeholder_names) != label_names:
            logger.warning(
                "placeholder names changed, metric labels keep their startup names",
                placeholder_names=config.placeholder_names,
                metric_labels=label_names,
            )
        logger.info("config change will apply from the next cycle", targets=len(config.placeholder_values))

    async def check_target(self, config: TargetConfig, values: Sequence[Any]) -> Observation:
        expansion = expand(config.url_template, config.placeholder_names, values, logger)
        log = expansion.log
        log.debug("starting check")

        observation = await observe(expansion.url, self.client, self.resolver)

        labels = {"code": str(observation.status_code), "ips": join_ips(observation.resolved_ips)}
        labels.update(expansion.labels)
        self.metrics.record_request(labels, observation.latency)

        if observation.error is not None:
            log.error(
                "could not complete http request",
                error=str(observation.error),
                error_type=type(observation.error.cause).__name__,
                millis=observation.latency_millis,
            )
        elif observation.resolution_error is not None:
            log.error("could not lookup IPs", error=str(observation.resolution_error))

        if self.sink is not None:
            try:
                self.sink.write(expansion.url, observation)
            except PersistenceError as exc:
                log.error("could not persist availability", error=str(exc))

        summary = log.info if observation.success else log.error
        summary(
            "check completed" if observation.ok else "check failed",
            code=observation.status_code,
            millis=observation.latency_millis,
            ips=list(observation.resolved_ips),
        )
        return observation

    async def _safe_check(
        self, config: TargetConfig, values: Sequence[Any], semaphore: asyncio.Semaphore
    ) -> Optional[Observation]:
        async with semaphore:
            try:
                return await self.check_target(config, values)
            except Exception as exc:
                logger.exception("check crashed", values=list(values), error=f"{type(exc).__name__}: {exc}")
                return None

    async def run_cycle(self) -> int:
        """Run one cycle; returns the number of dispatched probe tasks."""
        started = time.perf_counter()
        self._transition(EngineState.TICKING)
        async with self.store.cycle() as config:
            self._transition(EngineState.CYCLE_RUNNING)
            logger.info(
                "starting main loop",
                max_pool_size=config.max_pool_size,
                targets=len(config.placeholder_values),
            )
            semaphore = asyncio.Semaphore(config.max_pool_size)
            await asyncio.gather(
                *(self._safe_check(config, values, semaphore) for values in config.placeholder_values)
            )
            dispatched = len(config.placeholder_values)

        elapsed = time.perf_counter() - started
        self.metrics.record_cycle(elapsed)
        self.cycles += 1
        self._transition(EngineState.IDLE)
        logger.info("main loop done", duration=round(elapsed, 3), targets=dispatched)
        return dispatched

    async def run(self, once: bool = False) -> None:
        if once:
            await self.run_cycle()
            self._transition(EngineState.SHUTTING_DOWN)
            return

        loop = asyncio.get_running_loop()
        logger.info("starting ticker", period=self.period)
        next_tick = loop.time() + self.period
        while not self._stopping.is_set():
            delay = max(0.0, next_tick - loop.time())
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
            if self._stopping.is_set():
                break

            await self.run_cycle()

            now = loop.time()
            next_tick += self.period
            if next_tick < now:
                # Overran the period: fire once right away, drop the rest.
                missed = int((now - next_tick) // self.period)
                next_tick += missed * self.period
                logger.warning("cycle overran period", period=self.period, skipped_ticks=missed)

        self._transition(EngineState.SHUTTING_DOWN)
        logger.info("scheduler stopped", cycles=self.cycles)

    def stop(self, reason: str = "requested") -> None:
        if self._stopping.is_set():
            return
        logger.info("shutting down", signal=reason)
        self._stopping.set()
        self._transition(EngineState.SHUTTING_DOWN)

    def install_signal_handlers(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        loop = loop or asyncio.get_running_loop()
        for name in SHUTDOWN_SIGNALS:
            sig = getattr(signal, name, None)
            if sig is None:
                continue
            try:
                loop.add_signal_handler(sig, self.stop, name)
            except (NotImplementedError, RuntimeError) as exc:
                logger.warning("could not install signal handler", signal=name, error=str(exc))
