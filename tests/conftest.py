"""Shared fixtures for http_checker tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest
from prometheus_client import CollectorRegistry

from http_checker.config import ConfigStore, TargetConfig
from http_checker.metrics import Metrics


def config_dict(
    *,
    template: str = "http://{0}.svc.test/health",
    names: list[str] | None = None,
    values: list[list[Any]] | None = None,
    pool: int = 4,
) -> dict[str, Any]:
    return {
        "urlTemplate": template,
        "placeholderNames": names if names is not None else ["service"],
        "placeholderValues": values if values is not None else [["api"]],
        "maxPoolSize": pool,
    }


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[..., Path]:
    path = tmp_path / "config.json"

    def _write(**kwargs: Any) -> Path:
        path.write_text(json.dumps(config_dict(**kwargs)), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_store() -> Callable[..., ConfigStore]:
    def _make(**kwargs: Any) -> ConfigStore:
        return ConfigStore(config=TargetConfig.model_validate(config_dict(**kwargs)))

    return _make


@pytest.fixture
def make_metrics() -> Callable[[list[str]], Metrics]:
    def _make(names: list[str]) -> Metrics:
        return Metrics(names, registry=CollectorRegistry())

    return _make


@pytest.fixture
def mock_client() -> Callable[..., httpx.AsyncClient]:
    def _make(handler: Callable[[httpx.Request], Any]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make


def sample(metrics: Metrics, name: str, labels: dict[str, str] | None = None) -> float:
    """Current value of an exported sample, 0.0 when it does not exist yet."""
    if labels is not None and name.startswith("http_request_duration_seconds"):
        labels = {label: labels.get(label, "") for label in metrics.label_names}
    return float(metrics.registry.get_sample_value(name, labels or {}) or 0.0)
