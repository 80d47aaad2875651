"""
Bridge from Python's standard logging to JsonHttpSink.

Usage:
    from json_http_sink import setup_logging

    sink = setup_logging(
        url="https://logs.example.com",
        endpoint_path="ingest",
        auth=AuthConfig(kind=AuthType.BEARER, token="sk-123456"),
    )

    import logging
    logger = logging.getLogger(__name__)
    logger.info("Payment processed", extra={"user_id": "u123"})
"""

import logging
import traceback
from datetime import UTC, datetime

from .config import SinkConfig
from .records import Level, LogRecord
from .sink import JsonHttpSink

# Loggers whose records must never be shipped: the sink's own diagnostics
# and the HTTP stack it uses, which would otherwise feed back into the sink.
IGNORED_LOGGER_PREFIXES = ("json_http_sink", "httpx", "httpcore")

# Standard LogRecord attributes; anything else came in through ``extra``
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
        "asctime",
        "tag",
    }
)


class JsonHttpSinkHandler(logging.Handler):
    """
    Logging handler that appends records to a JsonHttpSink.

    Integrates with standard Python logging so existing code
    works without modification.
    """

    def __init__(self, sink: JsonHttpSink, level: int | None = None):
        """
        Initialize the handler.

        Args:
            sink: JsonHttpSink instance
            level: Minimum level to ship (default: the sink's configured level)
        """
        super().__init__(level=int(sink.config.level) if level is None else level)
        self.sink = sink

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith(IGNORED_LOGGER_PREFIXES):
            return False
        return super().filter(record)

    def to_log_record(self, record: logging.LogRecord) -> LogRecord:
        """Translate a stdlib LogRecord."""
        error = None
        stack_trace = None
        if record.exc_info and record.exc_info[1] is not None:
            error = record.exc_info[1]
            stack_trace = "".join(traceback.format_exception(*record.exc_info))
        elif record.stack_info:
            stack_trace = record.stack_info

        context = {}
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            # Only include scalar values
            if isinstance(value, str | int | float | bool):
                context[key] = str(value)

        tag = getattr(record, "tag", None)

        return LogRecord(
            level=Level.from_logging(record.levelno),
            message=record.getMessage(),
            timestamp=datetime.fromtimestamp(record.created, UTC),
            logger_name=record.name,
            tag=str(tag) if tag is not None else None,
            class_name=record.module,
            method_name=record.funcName,
            line_number=record.lineno,
            error=error,
            stack_trace=stack_trace,
            context=context or None,
        )

    def emit(self, record: logging.LogRecord):
        """Emit a log record."""
        try:
            self.sink.append(self.to_log_record(record))
        except Exception:
            self.handleError(record)

    def flush(self):
        self.sink.flush()

    def close(self):
        try:
            self.sink.dispose()
        finally:
            super().close()


def setup_logging(
    url: str,
    min_level: int = logging.INFO,
    also_console: bool = True,
    test: bool = False,
    **options,
) -> JsonHttpSink:
    """
    Set up Python logging to ship records through a JsonHttpSink.

    Call this once at startup and all existing logging calls will be
    shipped to the endpoint.

    Args:
        url: Endpoint base URL
        min_level: Minimum log level to ship
        also_console: Also log to console (default: True)
        test: Build the sink in test mode (no network)
        **options: Additional SinkConfig fields (batch_size, auth, ...)

    Returns:
        JsonHttpSink instance (for stats/manual flush)
    """
    sink = JsonHttpSink(SinkConfig(url=url, level=Level.from_logging(min_level), **options), test=test)

    handler = JsonHttpSinkHandler(sink, level=min_level)

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)

    if also_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        root_logger.addHandler(console_handler)

    # Set level if not already set
    if root_logger.level == logging.NOTSET:
        root_logger.setLevel(min_level)

    return sink
