"""Append-only CSV persistence, one file per expanded target URL."""

from __future__ import annotations

import csv
import os
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any
from urllib.parse import quote

import structlog

from .errors import PersistenceError
from .observation import Observation, format_ips, format_timestamp


logger = structlog.get_logger(__name__)

HEADER = ["time", "code", "latencyMillis", "ips"]

def target_filename(prefix: str, url: str) -> str:
    # Percent-encoding keeps distinct URLs on distinct files.
    return f"{prefix}_{quote(url, safe='')}"


def format_record(observation: Observation) -> list[str]:
    return [
        format_timestamp(observation.timestamp_ns),
        str(observation.status_code),
        str(observation.latency_millis),
        format_ips(observation.resolved_ips),
    ]


@dataclass
class _Handle:
    path: Path
    stream: IO[str]
    writer: Any


class CsvSink:
    """Lazily opens one append-mode writer per target and keeps it open.

    Files are never truncated: restarting the process, or probing the same
    target in a later cycle, appends to what is already there.
    """

    def __init__(self, prefix: str):
        self.prefix = prefix
        self._handles: dict[str, _Handle] = {}

    def _open(self, url: str) -> _Handle:
        path = Path(target_filename(self.prefix, url))
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            stream = open(path, "a", newline="", encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"could not open {path}: {exc}") from exc

        writer = csv.writer(stream)
        try:
            if stream.tell() == 0 and os.path.getsize(path) == 0:
                writer.writerow(HEADER)
                stream.flush()
        except OSError as exc:
            stream.close()
            raise PersistenceError(f"could not write header to {path}: {exc}") from exc

        logger.info("opened persistence file", url=url, path=str(path))
        return _Handle(path=path, stream=stream, writer=writer)

    def write(self, url: str, observation: Observation) -> None:
        handle = self._handles.get(url)
        if handle is None:
            handle = self._open(url)
            self._handles[url] = handle
        try:
            handle.writer.writerow(format_record(observation))
            handle.stream.flush()
        except (OSError, csv.Error) as exc:
            raise PersistenceError(f"could not append to {handle.path}: {exc}") from exc

    def close(self) -> None:
        for url, handle in list(self._handles.items()):
            try:
                handle.stream.close()
            except OSError as exc:
                logger.error("could not close persistence file", url=url, error=str(exc))
        self._handles.clear()
