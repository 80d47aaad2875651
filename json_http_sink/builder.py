"""
Fluent builder for JsonHttpSink.

Example:
    sink = (
        json_http_sink_builder("https://logs.example.com")
        .with_bearer_token("sk-123456")
        .with_level(Level.INFO)
        .with_batch_interval(30)
        .build()
    )

Later calls overwrite earlier ones for the same setting. Everything is
validated once, by ``parse_config``, when ``build`` is called.
"""

from types import MappingProxyType
from typing import Any

from .records import Level
from .sink import SINK_TYPE, JsonHttpSink


class JsonHttpSinkBuilder:
    """Accumulates sink configuration keys and builds a JsonHttpSink."""

    def __init__(self, url: str):
        self._config: dict[str, Any] = {"type": SINK_TYPE, "url": url}

    # --- Common properties ---

    def with_level(self, level: Level | str) -> "JsonHttpSinkBuilder":
        self._config["level"] = level.name if isinstance(level, Level) else level
        return self

    def with_enabled_state(self, enabled: bool) -> "JsonHttpSinkBuilder":
        self._config["enabled"] = enabled
        return self

    # --- HTTP ---

    def with_endpoint_path(self, path: str) -> "JsonHttpSinkBuilder":
        self._config["endpointPath"] = path
        return self

    def with_headers(self, headers: dict[str, str]) -> "JsonHttpSinkBuilder":
        """Replace all custom headers."""
        self._config["headers"] = dict(headers)
        return self

    def with_header(self, key: str, value: str) -> "JsonHttpSinkBuilder":
        """Add or replace a single header."""
        headers = dict(self._config.get("headers", {}))
        headers[key] = value
        self._config["headers"] = headers
        return self

    def with_timeout(self, seconds: float) -> "JsonHttpSinkBuilder":
        self._config["timeoutSeconds"] = seconds
        return self

    # --- Authentication ---

    def with_bearer_token(self, token: str) -> "JsonHttpSinkBuilder":
        return self.with_authentication(token, "Bearer")

    def with_authentication(self, token: str, auth_type: str) -> "JsonHttpSinkBuilder":
        self._config.pop("username", None)
        self._config.pop("password", None)
        self._config["authToken"] = token
        self._config["authType"] = auth_type
        return self

    def with_basic_auth(self, username: str, password: str) -> "JsonHttpSinkBuilder":
        self._config.pop("authToken", None)
        self._config["username"] = username
        self._config["password"] = password
        self._config["authType"] = "Basic"
        return self

    # --- Batching ---

    def with_batch_size(self, size: int) -> "JsonHttpSinkBuilder":
        self._config["batchSize"] = size
        return self

    def with_batch_interval(self, seconds: float) -> "JsonHttpSinkBuilder":
        self._config["batchIntervalSeconds"] = seconds
        return self

    def with_compression(self, compress: bool) -> "JsonHttpSinkBuilder":
        self._config["compressBatch"] = compress
        return self

    # --- Retry ---

    def with_max_retries(self, retries: int) -> "JsonHttpSinkBuilder":
        self._config["maxRetries"] = retries
        return self

    def with_retry_delay(self, seconds: float) -> "JsonHttpSinkBuilder":
        self._config["retryDelaySeconds"] = seconds
        return self

    def with_exponential_backoff(self, enabled: bool) -> "JsonHttpSinkBuilder":
        self._config["exponentialBackoff"] = enabled
        return self

    # --- Payload ---

    def with_stack_traces(self, include: bool) -> "JsonHttpSinkBuilder":
        self._config["includeStackTrace"] = include
        return self

    def with_metadata(self, include: bool) -> "JsonHttpSinkBuilder":
        self._config["includeMetadata"] = include
        return self

    # --- Presets ---

    def with_logstash_preset(self) -> "JsonHttpSinkBuilder":
        """Settings suited to a Logstash HTTP input."""
        self._config.update(
            headers={"Content-Type": "application/json"},
            batchSize=200,
            batchIntervalSeconds=30,
            includeMetadata=True,
            includeStackTrace=True,
            exponentialBackoff=True,
        )
        return self

    def with_high_volume_preset(self) -> "JsonHttpSinkBuilder":
        """Large compressed batches, lean records, a single retry."""
        self._config.update(
            batchSize=500,
            batchIntervalSeconds=10,
            includeStackTrace=False,
            includeMetadata=False,
            compressBatch=True,
            maxRetries=1,
        )
        return self

    def with_critical_error_preset(self) -> "JsonHttpSinkBuilder":
        """ERROR and above only, small batches, persistent retries."""
        self._config.update(
            level=Level.ERROR.name,
            batchSize=10,
            batchIntervalSeconds=5,
            includeStackTrace=True,
            includeMetadata=True,
            maxRetries=5,
            exponentialBackoff=True,
        )
        return self

    def with_development_preset(self) -> "JsonHttpSinkBuilder":
        """Send every record immediately with full detail."""
        self._config.update(
            level=Level.DEBUG.name,
            batchSize=1,
            batchIntervalSeconds=1,
            includeStackTrace=True,
            includeMetadata=True,
            timeoutSeconds=60,
        )
        return self

    # --- Build ---

    def build(self, *, test: bool = False, **kwargs) -> JsonHttpSink:
        """Build the sink. Extra keyword arguments go to JsonHttpSink."""
        return JsonHttpSink.from_config(self._config, test=test, **kwargs)

    def copy(self) -> "JsonHttpSinkBuilder":
        """Create a builder with an independent copy of this configuration."""
        new_builder = JsonHttpSinkBuilder(self._config["url"])
        new_builder._config.update(self._config)
        if "headers" in self._config:
            new_builder._config["headers"] = dict(self._config["headers"])
        return new_builder

    def get_config(self) -> MappingProxyType:
        """Read-only view of the accumulated configuration."""
        return MappingProxyType(self._config)

    def __repr__(self) -> str:
        return f"JsonHttpSinkBuilder(config={self._config})"


def json_http_sink_builder(url: str) -> JsonHttpSinkBuilder:
    """Convenience factory for JsonHttpSinkBuilder."""
    return JsonHttpSinkBuilder(url)
