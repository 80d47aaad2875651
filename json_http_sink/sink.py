"""
JsonHttpSink - the public entry point for shipping logs as JSON over HTTP.

Usage:
    sink = JsonHttpSink.from_config({
        "url": "https://logs.example.com",
        "authToken": "sk-123456",
        "batchSize": 100,
    })
    sink.append(LogRecord(Level.INFO, "Payment processed"))
    sink.flush()
    sink.dispose()
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

import httpx

from .config import SinkConfig, parse_config
from .metadata import MetadataProvider
from .payload import PayloadCodec
from .records import LogRecord
from .retry import RetryController
from .scheduler import DEFAULT_DELIVERY_WORKERS, BatchScheduler, SinkStatistics
from .transport import DeliveryClient

logger = logging.getLogger(__name__)

SINK_TYPE = "JSON_HTTP"


class JsonHttpSink:
    """
    Batched JSON-over-HTTP log sink.

    ``append`` never blocks on the network and never raises; delivery runs
    on background workers with bounded retries. ``enabled`` can be flipped at
    runtime to turn ``append`` into a no-op.
    """

    def __init__(
        self,
        config: SinkConfig,
        *,
        test: bool = False,
        metadata_provider: MetadataProvider | None = None,
        transport: httpx.BaseTransport | None = None,
        transport_factory: Callable[[], httpx.BaseTransport] | None = None,
        max_workers: int = DEFAULT_DELIVERY_WORKERS,
    ):
        """
        Initialize the sink.

        Args:
            config: Parsed sink configuration
            test: Skip network and timer; cuts count as successful sends
            metadata_provider: Source of batch metadata and MDC
            transport: Custom httpx transport, owned and closed by this sink
            transport_factory: Builds a fresh transport for this sink and
                for every deep copy of it; ignored when ``transport`` is given
            max_workers: Number of batches that may be in flight at once
        """
        self.config = config
        self.test = test
        self.enabled = config.enabled
        self.url = config.target_url
        self.headers = config.request_headers()
        self.metadata_provider = metadata_provider or MetadataProvider()
        self._transport_factory = transport_factory
        self._max_workers = max_workers

        if transport is None and transport_factory is not None and not test:
            transport = transport_factory()

        codec = PayloadCodec(
            include_stack_trace=config.include_stack_trace,
            include_metadata=config.include_metadata,
            metadata_provider=self.metadata_provider,
            compress=config.compress_batch,
        )

        retry = None
        if not test:
            retry = RetryController(
                client=DeliveryClient(timeout=config.timeout, transport=transport),
                url=self.url,
                headers=self.headers,
                max_retries=config.max_retries,
                backoff=RetryController.backoff_for(config.retry_delay, config.exponential_backoff),
                timeout=config.timeout,
            )

        self._scheduler = BatchScheduler(
            codec=codec,
            retry=retry,
            batch_size=config.batch_size,
            batch_interval=config.batch_interval,
            test=test,
            max_workers=max_workers,
        )
        self._scheduler.start()

        logger.debug(f"JsonHttpSink initialized: {self!r}")

    @classmethod
    def from_config(cls, raw: Mapping[str, Any], *, test: bool = False, **kwargs) -> "JsonHttpSink":
        """Create a sink from a framework configuration mapping."""
        return cls(parse_config(raw), test=test, **kwargs)

    @property
    def sink_type(self) -> str:
        return SINK_TYPE

    def append(self, record: LogRecord):
        """Buffer a record for delivery. No-op when disabled or disposed."""
        if not self.enabled:
            return
        try:
            self._scheduler.append(record)
        except Exception as e:
            logger.error(f"Failed to buffer log record: {e}", exc_info=True)

    def flush(self) -> bool:
        """Send buffered records now and wait for the result."""
        return self._scheduler.flush()

    def dispose(self):
        """Stop the timer, flush remaining records and release the transport."""
        self._scheduler.dispose()
        logger.debug("JsonHttpSink disposed")

    @property
    def statistics(self) -> SinkStatistics:
        return self._scheduler.snapshot()

    def get_statistics(self) -> dict[str, Any]:
        """
        Get delivery statistics.

        Returns:
            Dict with successfulSends, failedSends, bufferSize and
            lastSendTime (ISO-8601 string or None).
        """
        return self.statistics.to_dict()

    def create_deep_copy(self) -> "JsonHttpSink":
        """
        Create an independent sink with the same configuration.

        The copy has its own headers, buffer, timer, HTTP client and
        transport. Only the metadata provider, which belongs to the
        application, is shared. A transport passed to the constructor is
        never reused; the copy builds one from ``transport_factory`` or
        falls back to the httpx default.
        """
        copy = JsonHttpSink(
            self.config,
            test=self.test,
            metadata_provider=self.metadata_provider,
            transport_factory=self._transport_factory,
            max_workers=self._max_workers,
        )
        copy.enabled = self.enabled
        # Keep the same dict object; the copy's retry controller holds it
        copy.headers.clear()
        copy.headers.update(self.headers)
        return copy

    def __repr__(self) -> str:
        stats = self.statistics
        return (
            f"JsonHttpSink(url={self.url!r}, batch_size={self.config.batch_size}, "
            f"batch_interval={self.config.batch_interval}, enabled={self.enabled}, "
            f"stats={{sent: {stats.successful_sends}, failed: {stats.failed_sends}}})"
        )


def register(registry) -> None:
    """
    Register the sink factory with a host framework registry.

    ``registry`` only needs a ``register(name, factory)`` method; the factory
    is ``JsonHttpSink.from_config``.
    """
    registry.register(SINK_TYPE, JsonHttpSink.from_config)
    logger.debug(f"{SINK_TYPE} sink registered")
