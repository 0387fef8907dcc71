"""Observation records: one per probe attempt."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable
from urllib.parse import urlsplit

import httpx

from .errors import ProbeError, ResolutionError
from .prober import probe
from .resolver import resolve


Resolve = Callable[[str], Awaitable[list[str]]]


@dataclass(frozen=True)
class Observation:
    timestamp_ns: int
    status_code: int
    latency: float
    resolved_ips: tuple[str, ...] = ()
    error: ProbeError | None = None
    resolution_error: ResolutionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def success(self) -> bool:
        return self.ok and 200 <= self.status_code < 300

    @property
    def latency_millis(self) -> int:
        return int(round(self.latency * 1_000_000)) // 1000


def format_timestamp(timestamp_ns: int) -> str:
    """ISO-8601 UTC with nanosecond precision, e.g. 2024-01-01T12:00:00.000000001Z."""
    seconds, nanos = divmod(int(timestamp_ns), 1_000_000_000)
    base = datetime.fromtimestamp(seconds, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")
    return f"{base}.{nanos:09d}Z"


def format_ips(ips: tuple[str, ...] | list[str]) -> str:
    return json.dumps(list(ips), separators=(",", ":"))


def join_ips(ips: tuple[str, ...] | list[str]) -> str:
    return ",".join(ips)


async def observe(url: str, client: httpx.AsyncClient, resolver: Resolve = resolve) -> Observation:
    """Probe ``url`` and, if a response arrived, resolve its host.

    DNS is skipped when the request itself failed. A resolution failure
    keeps the probe's status and latency and leaves the IP list empty.
    """
    started_ns = time.time_ns()
    result = await probe(url, client)
    if not result.ok:
        return Observation(
            timestamp_ns=started_ns,
            status_code=0,
            latency=result.latency,
            error=result.error,
        )

    hostname = urlsplit(url).hostname or ""
    try:
        ips = await resolver(hostname)
    except ResolutionError as exc:
        return Observation(
            timestamp_ns=started_ns,
            status_code=result.status_code,
            latency=result.latency,
            resolution_error=exc,
        )
    return Observation(
        timestamp_ns=started_ns,
        status_code=result.status_code,
        latency=result.latency,
        resolved_ips=tuple(sorted(ips)),
    )
