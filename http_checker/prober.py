"""Single HTTP probe with wall-clock latency measurement."""

from __future__ import annotations

import time
from dataclasses import dataclass

import httpx
import structlog

from .errors import ProbeError


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ProbeResult:
    latency: float
    status_code: int
    error: ProbeError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def probe(url: str, client: httpx.AsyncClient) -> ProbeResult:
    """Issue one GET against ``url``.

    Latency covers the span from just before the request is sent to the
    arrival of the response headers, or to the failure point. The body is
    drained and discarded so the connection goes back to the client's pool.
    """
    started = time.perf_counter()
    try:
        request = client.build_request("GET", url)
        started = time.perf_counter()
        response = await client.send(request, stream=True)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        elapsed = time.perf_counter() - started
        return ProbeResult(latency=elapsed, status_code=0, error=ProbeError(url, exc))
    elapsed = time.perf_counter() - started

    try:
        async for _ in response.aiter_raw():
            pass
    except httpx.HTTPError as exc:
        # Headers arrived, so status and latency stand.
        logger.warning("could not drain response body", url=url, error=str(exc))
    finally:
        await response.aclose()

    return ProbeResult(latency=elapsed, status_code=response.status_code)
