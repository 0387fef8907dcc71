"""Error taxonomy for the probe engine."""

from __future__ import annotations


class HttpCheckerError(Exception):
    """Base class for every error raised by http_checker."""


class ConfigError(HttpCheckerError):
    """Configuration could not be read, parsed or validated."""


class ProbeError(HttpCheckerError):
    """The HTTP request failed before a response was received."""

    def __init__(self, url: str, cause: Exception):
        super().__init__(f"{type(cause).__name__}: {cause}")
        self.url = url
        self.cause = cause


class ResolutionError(HttpCheckerError):
    """DNS lookup for a target host failed."""

    def __init__(self, hostname: str, cause: Exception | None = None):
        detail = f"{type(cause).__name__}: {cause}" if cause is not None else "no addresses"
        super().__init__(f"could not resolve {hostname!r}: {detail}")
        self.hostname = hostname
        self.cause = cause


class PersistenceError(HttpCheckerError):
    """A record writer could not be created or written to."""


class LabelCoercionError(HttpCheckerError):
    """A placeholder value has no label-safe string form."""

    def __init__(self, name: str, value: object):
        super().__init__(f"could not convert {value!r} to string for label {name!r}")
        self.name = name
        self.value = value
