"""Synthetic HTTP monitoring agent with hot-reloadable targets."""

from .config import ConfigStore, RunOptions, TargetConfig, load_config
from .engine import Engine, EngineState
from .errors import (
    ConfigError,
    HttpCheckerError,
    LabelCoercionError,
    PersistenceError,
    ProbeError,
    ResolutionError,
)
from .metrics import Metrics
from .observation import Observation, observe
from .persistence import CsvSink
from .prober import ProbeResult, probe
from .resolver import resolve

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "ConfigStore",
    "CsvSink",
    "Engine",
    "EngineState",
    "HttpCheckerError",
    "LabelCoercionError",
    "Metrics",
    "Observation",
    "PersistenceError",
    "ProbeError",
    "ProbeResult",
    "ResolutionError",
    "RunOptions",
    "TargetConfig",
    "load_config",
    "observe",
    "probe",
    "resolve",
]
