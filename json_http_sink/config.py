"""
Configuration for the JSON HTTP sink.

The host framework hands the sink a loosely typed mapping. ``parse_config``
is the only place that mapping is read: aliases are resolved first, values
are coerced and validated, and the result is an immutable ``SinkConfig``.

Usage:
    config = parse_config({
        "url": "https://logs.example.com",
        "endpointPath": "ingest",
        "authToken": "sk-123456",
        "bufferSize": 50,
    })
    config.batch_size        # 50
    config.request_headers() # {"Authorization": "Bearer sk-123456", ...}
"""

import base64
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from .records import Level
from .transport import join_url

DEFAULT_BATCH_SIZE = 100
DEFAULT_BATCH_INTERVAL = 30.0
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 2.0

# Alias key -> canonical key. Canonical keys win when both are present.
CONFIG_ALIASES = {
    "bufferSize": "batchSize",
    "flushIntervalSeconds": "batchIntervalSeconds",
    "enableCompression": "compressBatch",
}

ENV_PREFIX = "JSON_HTTP_SINK_"

# Environment variable suffix -> config key
ENV_KEYS = {
    "URL": "url",
    "ENDPOINT_PATH": "endpointPath",
    "LEVEL": "level",
    "AUTH_TOKEN": "authToken",
    "AUTH_TYPE": "authType",
    "USERNAME": "username",
    "PASSWORD": "password",
    "BATCH_SIZE": "batchSize",
    "BATCH_INTERVAL_SECONDS": "batchIntervalSeconds",
    "TIMEOUT_SECONDS": "timeoutSeconds",
    "MAX_RETRIES": "maxRetries",
    "RETRY_DELAY_SECONDS": "retryDelaySeconds",
    "EXPONENTIAL_BACKOFF": "exponentialBackoff",
    "INCLUDE_STACK_TRACE": "includeStackTrace",
    "INCLUDE_METADATA": "includeMetadata",
    "COMPRESS_BATCH": "compressBatch",
    "ENABLED": "enabled",
}

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}


class ConfigurationError(ValueError):
    """Raised when sink configuration is missing or invalid."""


class AuthType(Enum):
    """Authentication schemes the sink can inject as a static header."""

    NONE = "none"
    BEARER = "Bearer"
    BASIC = "Basic"


@dataclass(frozen=True)
class AuthConfig:
    """Authentication descriptor."""

    kind: AuthType = AuthType.NONE
    token: str | None = None
    username: str | None = None
    password: str | None = None

    def header_value(self) -> str | None:
        """Value for the Authorization header, or None when not applicable."""
        if self.kind == AuthType.BEARER and self.token:
            return f"Bearer {self.token}"
        if self.kind == AuthType.BASIC:
            if self.username is not None and self.password is not None:
                credentials = f"{self.username}:{self.password}".encode("utf-8")
                return f"Basic {base64.b64encode(credentials).decode('ascii')}"
            if self.token:
                # Token supplied with authType=Basic is already encoded
                return f"Basic {self.token}"
        return None


@dataclass(frozen=True)
class SinkConfig:
    """Immutable sink configuration."""

    url: str
    endpoint_path: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    auth: AuthConfig = field(default_factory=AuthConfig)
    level: Level = Level.INFO
    batch_size: int = DEFAULT_BATCH_SIZE
    batch_interval: float = DEFAULT_BATCH_INTERVAL
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: float = DEFAULT_RETRY_DELAY
    exponential_backoff: bool = True
    include_stack_trace: bool = True
    include_metadata: bool = True
    compress_batch: bool = False
    enabled: bool = True

    def __post_init__(self):
        if not self.url:
            raise ConfigurationError("Missing url for JSON HTTP sink")
        if self.batch_size < 1:
            raise ConfigurationError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.max_retries < 0:
            raise ConfigurationError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.batch_interval <= 0:
            raise ConfigurationError(f"batch_interval must be > 0, got {self.batch_interval}")
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be > 0, got {self.timeout}")
        if self.retry_delay < 0:
            raise ConfigurationError(f"retry_delay must be >= 0, got {self.retry_delay}")
        # Freeze a private copy so callers cannot mutate the config through
        # the mapping they passed in.
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @property
    def target_url(self) -> str:
        """Base URL with the endpoint path appended, if any."""
        return join_url(self.url, self.endpoint_path)

    def request_headers(self) -> dict[str, str]:
        """
        Build the headers sent with every batch.

        Static headers first, then the Authorization header derived from
        ``auth``, then a Content-Type default unless one was configured.
        """
        headers = dict(self.headers)
        auth_value = self.auth.header_value()
        if auth_value:
            headers["Authorization"] = auth_value
        if not any(key.lower() == "content-type" for key in headers):
            headers["Content-Type"] = "application/json"
        if self.compress_batch:
            headers["Content-Encoding"] = "gzip"
        return headers


def resolve_aliases(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``raw`` with alias keys folded into canonical keys."""
    resolved = dict(raw)
    for alias, canonical in CONFIG_ALIASES.items():
        if alias in resolved:
            value = resolved.pop(alias)
            resolved.setdefault(canonical, value)
    return resolved


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    if isinstance(value, int):
        return bool(value)
    raise ConfigurationError(f"{key} must be a boolean, got {value!r}")


def _as_int(key: str, value: Any) -> int:
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from None


def _as_float(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"{key} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be a number, got {value!r}") from None


def _parse_auth(raw: Mapping[str, Any]) -> AuthConfig:
    if raw.get("authToken"):
        auth_type = str(raw.get("authType") or AuthType.BEARER.value)
        for kind in AuthType:
            if kind.value.lower() == auth_type.lower():
                return AuthConfig(kind=kind, token=str(raw["authToken"]))
        raise ConfigurationError(f"Unsupported authType: {auth_type!r}")

    if raw.get("username") is not None and raw.get("password") is not None:
        return AuthConfig(
            kind=AuthType.BASIC,
            username=str(raw["username"]),
            password=str(raw["password"]),
        )

    return AuthConfig()


def parse_config(raw: Mapping[str, Any]) -> SinkConfig:
    """
    Build a SinkConfig from a framework configuration mapping.

    Raises:
        ConfigurationError: if ``url`` is missing or a value is invalid
    """
    config = resolve_aliases(raw)

    url = config.get("url")
    if not url:
        raise ConfigurationError("Missing url argument for JSON HTTP sink")

    headers = config.get("headers") or {}
    if not isinstance(headers, Mapping):
        raise ConfigurationError(f"headers must be a mapping, got {type(headers).__name__}")

    kwargs: dict[str, Any] = {
        "url": str(url),
        "endpoint_path": config.get("endpointPath") or None,
        "headers": {str(k): str(v) for k, v in headers.items()},
        "auth": _parse_auth(config),
    }

    if "level" in config:
        level = config["level"]
        if isinstance(level, Level):
            kwargs["level"] = level
        else:
            try:
                kwargs["level"] = Level.from_name(str(level))
            except ValueError as e:
                raise ConfigurationError(str(e)) from None

    if "batchSize" in config:
        kwargs["batch_size"] = _as_int("batchSize", config["batchSize"])
    if "batchIntervalSeconds" in config:
        kwargs["batch_interval"] = _as_float("batchIntervalSeconds", config["batchIntervalSeconds"])
    if "timeoutSeconds" in config:
        kwargs["timeout"] = _as_float("timeoutSeconds", config["timeoutSeconds"])
    if "maxRetries" in config:
        kwargs["max_retries"] = _as_int("maxRetries", config["maxRetries"])
    if "retryDelaySeconds" in config:
        kwargs["retry_delay"] = _as_float("retryDelaySeconds", config["retryDelaySeconds"])

    for key, attr in (
        ("exponentialBackoff", "exponential_backoff"),
        ("includeStackTrace", "include_stack_trace"),
        ("includeMetadata", "include_metadata"),
        ("compressBatch", "compress_batch"),
        ("enabled", "enabled"),
    ):
        if key in config:
            kwargs[attr] = _as_bool(key, config[key])

    return SinkConfig(**kwargs)


def from_env(environ: Mapping[str, str] | None = None) -> SinkConfig:
    """
    Create a SinkConfig from environment variables.

    Environment variables:
        JSON_HTTP_SINK_URL: Endpoint base URL (required)
        JSON_HTTP_SINK_AUTH_TOKEN: Bearer token (optional)
        JSON_HTTP_SINK_BATCH_SIZE, ..._BATCH_INTERVAL_SECONDS, etc.

    Raises:
        ConfigurationError: if JSON_HTTP_SINK_URL is not set
    """
    env = os.environ if environ is None else environ
    raw = {
        key: env[ENV_PREFIX + suffix]
        for suffix, key in ENV_KEYS.items()
        if env.get(ENV_PREFIX + suffix)
    }
    if "url" not in raw:
        raise ConfigurationError(f"{ENV_PREFIX}URL environment variable required")
    return parse_config(raw)
