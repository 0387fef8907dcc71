from __future__ import annotations

import csv
import json
from pathlib import Path

import pytest

from http_checker.cli import build_parser, main, options_from_args
from http_checker.errors import ConfigError
from http_checker.persistence import target_filename


def test_parser_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("HTTP_CHECKER_PERIOD", "HTTP_CHECKER_PERSIST", "HTTP_CHECKER_FILE", "HTTP_CHECKER_JSON_LOGS"):
        monkeypatch.delenv(name, raising=False)
    args = build_parser().parse_args(["run"])
    opts = options_from_args(args)
    assert opts.period == 30
    assert opts.persist is False
    assert opts.file_prefix == "measurements.csv"
    assert opts.json_logs is None
    assert args.once is False


@pytest.mark.parametrize(
    ("argv", "expected"),
    [
        (["run", "--persist"], True),
        (["run", "--persist", "true"], True),
        (["run", "--persist=false"], False),
        (["run", "--persist", "0"], False),
    ],
)
def test_persist_flag_forms(argv: list[str], expected: bool) -> None:
    assert options_from_args(build_parser().parse_args(argv)).persist is expected


def test_run_flags() -> None:
    args = build_parser().parse_args(
        ["run", "-p", "10", "--file", "out/m.csv", "--metrics-port", "0", "--json-logs", "--once"]
    )
    opts = options_from_args(args)
    assert opts.period == 10
    assert opts.file_prefix == "out/m.csv"
    assert opts.metrics_port == 0
    assert opts.json_logs is True
    assert args.once is True


def test_non_positive_period_is_rejected() -> None:
    with pytest.raises(ConfigError):
        options_from_args(build_parser().parse_args(["run", "--period", "0"]))


def test_missing_command_exits() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_main_fails_on_missing_config(tmp_path: Path) -> None:
    assert main(["run", "--config", str(tmp_path / "missing.yaml"), "--metrics-port", "0", "--once"]) == 1


def test_main_fails_on_invalid_config(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("urlTemplate: 'http://{0}/'\nplaceholderNames: [a]\nplaceholderValues: [[x, y]]\n", encoding="utf-8")
    assert main(["run", "--config", str(path), "--metrics-port", "0", "--once"]) == 1


@pytest.mark.parametrize("template", ["http://{0.host}/", "http://{0[x]}/"])
def test_main_fails_on_unexpandable_template(tmp_path: Path, template: str) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"urlTemplate": template, "placeholderNames": ["a"], "placeholderValues": [[1]]}), encoding="utf-8")
    assert main(["run", "--config", str(path), "--metrics-port", "0", "--once"]) == 1


def test_main_runs_one_cycle_and_persists(tmp_path: Path) -> None:
    # Port 9 (discard) is closed on test hosts, so the probe fails fast with status 0.
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "urlTemplate": "http://127.0.0.1:9/{0}",
                "placeholderNames": ["name"],
                "placeholderValues": [["health"]],
                "maxPoolSize": 1,
            }
        ),
        encoding="utf-8",
    )
    prefix = str(tmp_path / "m.csv")
    code = main(
        ["run", "--config", str(path), "--period", "2", "--persist", "--file", prefix, "--metrics-port", "0", "--once"]
    )
    assert code == 0

    with open(target_filename(prefix, "http://127.0.0.1:9/health"), newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["time", "code", "latencyMillis", "ips"]
    assert rows[1][1] == "0"
    assert rows[1][3] == "[]"
