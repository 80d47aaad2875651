"""Pytest configuration and shared fixtures for json-http-sink tests."""

from __future__ import annotations

from collections.abc import Callable, Generator
from datetime import UTC, datetime

import pytest

from json_http_sink import JsonHttpSink, Level, LogRecord, MetadataProvider

from mocks import MockEndpoint


@pytest.fixture
def endpoint() -> MockEndpoint:
    """A scripted HTTP endpoint that accepts everything by default."""
    return MockEndpoint()


@pytest.fixture
def metadata_provider() -> MetadataProvider:
    """Metadata provider with fixed identifiers."""
    return MetadataProvider(app_version="1.2.3", device_id="device-1", session_id="session-1")


@pytest.fixture
def make_record() -> Callable[..., LogRecord]:
    """Factory for log records with sensible defaults."""

    def _make(message: str = "Test log message", level: Level = Level.INFO, **kwargs) -> LogRecord:
        kwargs.setdefault("timestamp", datetime(2024, 1, 15, 10, 30, tzinfo=UTC))
        return LogRecord(level=level, message=message, **kwargs)

    return _make


@pytest.fixture
def sinks() -> Generator[list[JsonHttpSink], None, None]:
    """Collects sinks created by a test and disposes them afterwards."""
    created: list[JsonHttpSink] = []
    yield created
    for sink in created:
        sink.dispose()


@pytest.fixture
def make_sink(sinks, endpoint, metadata_provider) -> Callable[..., JsonHttpSink]:
    """
    Build a sink against the mock endpoint.

    Network mode by default; retries never sleep and the timer is effectively
    off unless the test overrides ``batchIntervalSeconds``.
    """

    def _make(test: bool = False, **overrides) -> JsonHttpSink:
        raw = {
            "url": "https://logs.example.com",
            "batchIntervalSeconds": 3600,
            "retryDelaySeconds": 0,
            **overrides,
        }
        sink = JsonHttpSink.from_config(
            raw,
            test=test,
            metadata_provider=metadata_provider,
            transport_factory=endpoint.new_transport,
        )
        sinks.append(sink)
        return sink

    return _make
