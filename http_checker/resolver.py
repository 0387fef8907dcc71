"""DNS resolution for probe targets."""

from __future__ import annotations

import asyncio
import socket

from .errors import ResolutionError


async def _lookup(hostname: str) -> list[str]:
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(hostname, None, type=socket.SOCK_STREAM)
    return [info[4][0] for info in infos]


async def resolve(hostname: str) -> list[str]:
    """Resolve a hostname to its addresses, sorted lexicographically.

    Identical DNS answers always yield identical lists, which keeps metric
    labels and log lines stable across cycles. Failures raise
    ResolutionError and are not retried.
    """
    host = str(hostname or "").strip()
    if not host:
        raise ResolutionError(host)
    try:
        addresses = await _lookup(host)
    except (OSError, UnicodeError) as exc:
        raise ResolutionError(host, exc) from exc
    ips = sorted({str(a).strip() for a in addresses if str(a or "").strip()})
    if not ips:
        raise ResolutionError(host)
    return ips
