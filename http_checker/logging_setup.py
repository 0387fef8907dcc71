"""structlog configuration for the agent process."""

from __future__ import annotations

import logging
import os

import structlog


KUBERNETES_SECRETS_DIR = "/var/run/secrets/kubernetes.io"


def running_in_kubernetes() -> bool:
    return os.path.exists(KUBERNETES_SECRETS_DIR)


def configure_logging(level: str = "INFO", json_output: bool | None = None) -> None:
    """Console output for humans, JSON lines inside Kubernetes or on request."""
    if json_output is None:
        json_output = running_in_kubernetes()
    numeric_level = getattr(logging, str(level).upper(), logging.INFO)

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=numeric_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
