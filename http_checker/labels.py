"""URL template expansion and label / log-context construction."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import structlog

from .errors import LabelCoercionError


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Expansion:
    url: str
    labels: dict[str, str]
    log: Any


def coerce_label_value(value: Any, name: str = "") -> str:
    """Render a placeholder value as a label string.

    Total over str, int, float and bool. Anything else raises
    LabelCoercionError.
    """
    # bool is a subclass of int, check it first
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    raise LabelCoercionError(name, value)


def _format_value(value: Any) -> Any:
    try:
        return coerce_label_value(value)
    except LabelCoercionError:
        return value


def expand_url(template: str, names: Sequence[str], values: Sequence[Any]) -> str:
    formatted = [_format_value(v) for v in values]
    return template.format(*formatted, **dict(zip(names, formatted)))


def build_labels(names: Sequence[str], values: Sequence[Any], log: Any = None) -> dict[str, str]:
    log = log if log is not None else logger
    labels: dict[str, str] = {}
    for name, value in zip(names, values):
        try:
            labels[name] = coerce_label_value(value, name)
        except LabelCoercionError as exc:
            log.error("could not build label", label=name, error=str(exc))
            continue
    log.debug("built labels", labels=labels)
    return labels


def build_log_context(base: Any, names: Sequence[str], values: Sequence[Any], url: str) -> Any:
    context = {name: value for name, value in zip(names, values)}
    context["url"] = url
    return base.bind(**context)


def expand(template: str, names: Sequence[str], values: Sequence[Any], log: Any = None) -> Expansion:
    url = expand_url(template, names, values)
    bound = build_log_context(log if log is not None else logger, names, values, url)
    return Expansion(url=url, labels=build_labels(names, values, bound), log=bound)
