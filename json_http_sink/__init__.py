"""
json-http-sink - Batched JSON-over-HTTP log shipping.

This package provides:
- JsonHttpSink: Buffers log records and ships them in batches with retries
- JsonHttpSinkBuilder: Fluent configuration with presets
- JsonHttpSinkHandler / setup_logging: Standard logging integration

Usage:
    from json_http_sink import JsonHttpSink, LogRecord, Level

    sink = JsonHttpSink.from_config({
        "url": "https://logs.example.com",
        "authToken": "sk-123456",
    })
    sink.append(LogRecord(Level.INFO, "Service started"))
    sink.dispose()

Example:
    # Ship everything logged through the logging module
    from json_http_sink import setup_logging

    sink = setup_logging(url="https://logs.example.com", batch_size=50)

    import logging
    logging.getLogger(__name__).info("Service started")
"""

from .builder import JsonHttpSinkBuilder, json_http_sink_builder
from .config import (
    AuthConfig,
    AuthType,
    ConfigurationError,
    SinkConfig,
    from_env,
    parse_config,
)
from .handler import JsonHttpSinkHandler, setup_logging
from .metadata import MetadataProvider
from .payload import PayloadCodec
from .records import Level, LogRecord
from .retry import BackoffConfig, ExponentialBackoff, RetryController
from .scheduler import BatchScheduler, SinkStatistics
from .sink import SINK_TYPE, JsonHttpSink, register
from .transport import DeliveryClient, Outcome, join_url

__all__ = [
    # Sink
    "JsonHttpSink",
    "SINK_TYPE",
    "register",
    "SinkStatistics",
    "BatchScheduler",
    # Builder
    "JsonHttpSinkBuilder",
    "json_http_sink_builder",
    # Logging integration
    "JsonHttpSinkHandler",
    "setup_logging",
    # Configuration
    "SinkConfig",
    "AuthConfig",
    "AuthType",
    "ConfigurationError",
    "parse_config",
    "from_env",
    # Records
    "Level",
    "LogRecord",
    "MetadataProvider",
    # Delivery
    "PayloadCodec",
    "DeliveryClient",
    "Outcome",
    "join_url",
    "RetryController",
    "BackoffConfig",
    "ExponentialBackoff",
]

__version__ = "1.0.0"
