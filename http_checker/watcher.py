"""Polling watcher for the config file."""

from __future__ import annotations

import hashlib
import inspect
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Union

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger


logger = structlog.get_logger(__name__)

Callback = Callable[[], Union[Any, Awaitable[Any]]]
Fingerprint = tuple[int, int, str]


def fingerprint(path: Path) -> Optional[Fingerprint]:
    try:
        stat = path.stat()
        digest = hashlib.sha256(path.read_bytes()).hexdigest()
    except OSError:
        return None
    return stat.st_mtime_ns, stat.st_size, digest


class ConfigFileWatcher:
    """Calls its subscribers whenever the watched file changes.

    Polls on an APScheduler interval job. Only one poll runs at a time and
    missed polls are coalesced.
    """

    JOB_ID = "config_watch"

    def __init__(self, path: Path, interval_seconds: float = 5.0):
        self.path = Path(path)
        self.interval_seconds = max(0.1, float(interval_seconds))
        self.scheduler = AsyncIOScheduler()
        self.running = False
        self._callbacks: list[Callback] = []
        self._last = fingerprint(self.path)

    def subscribe(self, callback: Callback) -> None:
        self._callbacks.append(callback)

    async def check_once(self) -> bool:
        """Poll the file once; returns True when a change was dispatched."""
        current = fingerprint(self.path)
        if current is None:
            if self._last is not None:
                logger.warning("config file disappeared", path=str(self.path))
            self._last = None
            return False
        if current == self._last:
            return False

        self._last = current
        logger.info("config file changed", path=str(self.path))
        for callback in list(self._callbacks):
            try:
                result = callback()
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                logger.exception("config change callback failed", path=str(self.path), error=str(exc))
        return True

    async def start(self) -> None:
        if self.running:
            logger.warning("Watcher already running")
            return

        self.scheduler.add_job(
            func=self.check_once,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=self.JOB_ID,
            name="Watch config file",
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        self.running = True
        logger.info("Config watcher started", path=str(self.path), interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        if not self.running:
            return

        self.scheduler.shutdown(wait=False)
        self.running = False
        logger.info("Config watcher stopped", path=str(self.path))
