"""Prometheus metrics for probes and cycles."""

from __future__ import annotations

from typing import Mapping, Sequence

import structlog
from prometheus_client import CollectorRegistry, Summary, start_http_server


logger = structlog.get_logger(__name__)

BASE_LABELS = ("code", "ips")


class Metrics:
    """Request and cycle counters bound to one registry.

    Label names are fixed when the collector is built: ``code``, ``ips``
    and one label per placeholder name. A label missing from a sample (for
    example a value that could not be coerced) is exported as the empty
    string, which Prometheus treats the same as an absent label.
    """

    def __init__(self, placeholder_names: Sequence[str], registry: CollectorRegistry | None = None):
        self.registry = registry if registry is not None else CollectorRegistry()
        self.label_names = tuple(BASE_LABELS) + tuple(placeholder_names)
        self.http_request_duration_seconds = Summary(
            "http_request_duration_seconds",
            "Count and sum of durations of the http requests that have been made",
            self.label_names,
            registry=self.registry,
        )
        self.processing_duration_seconds = Summary(
            "processing_duration_seconds",
            "Count and sum of durations of the processing loops that have been executed",
            registry=self.registry,
        )

    def _label_values(self, labels: Mapping[str, str]) -> dict[str, str]:
        unknown = set(labels) - set(self.label_names)
        if unknown:
            logger.debug("dropping labels not known to the collector", labels=sorted(unknown))
        return {name: str(labels.get(name, "")) for name in self.label_names}

    def record_request(self, labels: Mapping[str, str], seconds: float) -> None:
        self.http_request_duration_seconds.labels(**self._label_values(labels)).observe(seconds)

    def record_cycle(self, seconds: float) -> None:
        self.processing_duration_seconds.observe(seconds)


def serve_metrics(port: int, registry: CollectorRegistry, addr: str = "0.0.0.0") -> None:
    start_http_server(port, addr=addr, registry=registry)
    logger.info("metrics server listening", addr=addr, port=port)
