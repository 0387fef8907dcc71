from __future__ import annotations

import pytest
from prometheus_client import CollectorRegistry, generate_latest

from http_checker.metrics import Metrics

from conftest import sample


def test_record_request_increments_count_and_sum() -> None:
    metrics = Metrics(["service"], registry=CollectorRegistry())
    labels = {"code": "200", "ips": "1.2.3.4", "service": "api"}

    metrics.record_request(labels, 0.05)
    metrics.record_request(labels, 0.25)

    assert sample(metrics, "http_request_duration_seconds_count", labels) == 2
    assert sample(metrics, "http_request_duration_seconds_sum", labels) == pytest.approx(0.3)


def test_missing_label_is_exported_empty() -> None:
    metrics = Metrics(["service", "region"], registry=CollectorRegistry())
    metrics.record_request({"code": "0", "ips": "", "service": "api"}, 0.1)

    full = {"code": "0", "ips": "", "service": "api", "region": ""}
    assert metrics.registry.get_sample_value("http_request_duration_seconds_count", full) == 1


def test_unknown_labels_are_dropped() -> None:
    metrics = Metrics([], registry=CollectorRegistry())
    metrics.record_request({"code": "200", "ips": "", "extra": "x"}, 0.1)
    assert metrics.registry.get_sample_value("http_request_duration_seconds_count", {"code": "200", "ips": ""}) == 1


def test_record_cycle() -> None:
    metrics = Metrics([], registry=CollectorRegistry())
    metrics.record_cycle(1.5)
    metrics.record_cycle(0.5)
    assert sample(metrics, "processing_duration_seconds_count") == 2
    assert sample(metrics, "processing_duration_seconds_sum") == pytest.approx(2.0)


def test_exposition_names() -> None:
    metrics = Metrics(["service"], registry=CollectorRegistry())
    metrics.record_request({"code": "200", "ips": "1.2.3.4", "service": "api"}, 0.1)
    metrics.record_cycle(0.2)

    text = generate_latest(metrics.registry).decode()
    assert 'http_request_duration_seconds_count{code="200",ips="1.2.3.4",service="api"} 1.0' in text
    assert "http_request_duration_seconds_sum{" in text
    assert "processing_duration_seconds_count 1.0" in text
    assert "processing_duration_seconds_sum 0.2" in text


def test_registries_are_isolated() -> None:
    a = Metrics([], registry=CollectorRegistry())
    b = Metrics([], registry=CollectorRegistry())
    a.record_cycle(1.0)
    assert sample(a, "processing_duration_seconds_count") == 1
    assert sample(b, "processing_duration_seconds_count") == 0
