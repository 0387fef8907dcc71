"""Target configuration: model, file loading and the hot-reloadable store."""

from __future__ import annotations

import asyncio
import inspect
import os
import re
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar, Union

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import ConfigError
from .labels import expand_url


logger = structlog.get_logger(__name__)

CONFIG_ENV_VAR = "HTTP_CHECKER_CONFIG"
CONFIG_SEARCH_DIRS = (Path("config"), Path("/http-checker/configs"))
CONFIG_FILENAMES = ("config.yaml", "config.yml", "config.json")
RESERVED_LABELS = frozenset({"code", "ips"})

_LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

ChangeHandler = Callable[["TargetConfig"], Union[None, Awaitable[None]]]


class TargetConfig(BaseModel):
    """URL template plus the placeholder tuples it is expanded with."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    url_template: str = Field(alias="urlTemplate", min_length=1, description="str.format template for target URLs")
    placeholder_names: list[str] = Field(default_factory=list, alias="placeholderNames", description="Label name per slot")
    placeholder_values: list[list[Any]] = Field(
        default_factory=list, alias="placeholderValues", description="One value tuple per target"
    )
    max_pool_size: int = Field(default=10, alias="maxPoolSize", ge=1, description="Max in-flight probes per cycle")

    @field_validator("placeholder_names")
    @classmethod
    def check_names(cls, names: list[str]) -> list[str]:
        seen: set[str] = set()
        for name in names:
            if not _LABEL_NAME_RE.match(name) or name.startswith("__"):
                raise ValueError(f"invalid placeholder name {name!r}")
            if name in RESERVED_LABELS:
                raise ValueError(f"placeholder name {name!r} is reserved")
            if name in seen:
                raise ValueError(f"duplicate placeholder name {name!r}")
            seen.add(name)
        return names

    @model_validator(mode="after")
    def check_tuples(self) -> "TargetConfig":
        width = len(self.placeholder_names)
        for i, values in enumerate(self.placeholder_values):
            if len(values) != width:
                raise ValueError(f"placeholderValues[{i}] has {len(values)} values, expected {width}")
            try:
                expand_url(self.url_template, self.placeholder_names, values)
            except (AttributeError, IndexError, KeyError, TypeError, ValueError) as exc:
                raise ValueError(f"urlTemplate does not expand with placeholderValues[{i}]: {exc!r}") from exc
        return self


def parse_config(data: Any) -> TargetConfig:
    if not isinstance(data, dict):
        raise ConfigError("Config must be a mapping")
    try:
        return TargetConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc


def load_config(path: Path) -> TargetConfig:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigError(f"could not read {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"could not parse {path}: {exc}") from exc
    return parse_config(data)


def find_config_file(explicit: Optional[str] = None) -> Path:
    """Locate the config file: explicit path, env var, then the search dirs."""
    candidate = explicit or os.getenv(CONFIG_ENV_VAR)
    if candidate:
        path = Path(candidate)
        if not path.is_file():
            raise ConfigError(f"config file not found: {path}")
        return path
    for directory in CONFIG_SEARCH_DIRS:
        for filename in CONFIG_FILENAMES:
            path = directory / filename
            if path.is_file():
                return path
    searched = [str(d / f) for d in CONFIG_SEARCH_DIRS for f in CONFIG_FILENAMES]
    raise ConfigError(f"no config file found, searched {searched}")


class ConfigStore:
    """Holds the current TargetConfig behind a single asyncio lock.

    The engine keeps the lock for a whole cycle (see ``cycle``), so a reload
    that arrives mid-cycle waits and only becomes visible to the next cycle.
    A reload that fails to parse leaves the current config untouched.
    """

    def __init__(self, path: Optional[Path] = None, config: Optional[TargetConfig] = None):
        self.path = Path(path) if path is not None else None
        self._config = config
        self._lock = asyncio.Lock()
        self._handlers: list[ChangeHandler] = []

    def load(self) -> TargetConfig:
        if self.path is None:
            raise ConfigError("no config path set")
        self._config = load_config(self.path)
        logger.info("loaded config", path=str(self.path), targets=len(self._config.placeholder_values))
        return self._config.model_copy(deep=True)

    def on_change(self, handler: ChangeHandler) -> None:
        self._handlers.append(handler)

    async def reload(self) -> bool:
        if self.path is None:
            raise ConfigError("no config path set")
        try:
            new_config = load_config(self.path)
        except ConfigError as exc:
            logger.error("failed to load config, keeping previous", path=str(self.path), error=str(exc))
            return False

        logger.info("config has changed, waiting for lock", path=str(self.path))
        async with self._lock:
            self._config = new_config
        logger.info(
            "successfully loaded config",
            path=str(self.path),
            targets=len(new_config.placeholder_values),
            max_pool_size=new_config.max_pool_size,
        )
        await self._notify(new_config)
        return True

    async def _notify(self, config: TargetConfig) -> None:
        for handler in list(self._handlers):
            try:
                result = handler(config.model_copy(deep=True))
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                logger.exception("config change handler failed", error=str(exc))

    def _copy(self) -> TargetConfig:
        if self._config is None:
            raise ConfigError("no config loaded")
        return self._config.model_copy(deep=True)

    async def current_snapshot(self) -> TargetConfig:
        async with self._lock:
            return self._copy()

    @asynccontextmanager
    async def cycle(self) -> AsyncIterator[TargetConfig]:
        """Hold the config lock for one scheduling cycle."""
        async with self._lock:
            yield self._copy()


TRUE_WORDS = frozenset({"1", "true", "yes", "y", "on"})
FALSE_WORDS = frozenset({"0", "false", "no", "n", "off"})

T = TypeVar("T")


def parse_bool(value: str) -> bool:
    word = value.strip().lower()
    if word in TRUE_WORDS:
        return True
    if word in FALSE_WORDS:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _from_env(name: str, convert: Callable[[str], T], default: T) -> T:
    """Read ``name`` through ``convert``; unset, blank or unparsable gives ``default``."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return convert(raw)
    except ValueError:
        logger.warning("ignoring invalid environment value", name=name, value=raw)
        return default


@dataclass(frozen=True)
class RunOptions:
    period: int = 30
    persist: bool = False
    file_prefix: str = "measurements.csv"
    metrics_port: int = 8080
    watch_interval: float = 5.0
    log_level: str = "INFO"
    json_logs: Optional[bool] = None

    @classmethod
    def from_env(cls) -> "RunOptions":
        return cls(
            period=_from_env("HTTP_CHECKER_PERIOD", int, cls.period),
            persist=_from_env("HTTP_CHECKER_PERSIST", parse_bool, cls.persist),
            file_prefix=_from_env("HTTP_CHECKER_FILE", str, cls.file_prefix),
            metrics_port=_from_env("HTTP_CHECKER_METRICS_PORT", int, cls.metrics_port),
            watch_interval=_from_env("HTTP_CHECKER_WATCH_INTERVAL", float, cls.watch_interval),
            log_level=_from_env("LOG_LEVEL", str, cls.log_level),
            json_logs=_from_env("HTTP_CHECKER_JSON_LOGS", parse_bool, cls.json_logs),
        )
