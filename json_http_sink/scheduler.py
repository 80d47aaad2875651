"""
Batch buffer and send scheduler.

Holds pending records, decides when a batch is cut, hands cut batches to a
worker pool for delivery, and reinserts or drops batches that fail.

Cut triggers, checked after every append (at most one cut per append):
    1. Urgent error: the appended record is ERROR or above and the buffer
       holds at least URGENT_ERROR_THRESHOLD records.
    2. Size: the buffer holds at least ``batch_size`` records.
A background timer also cuts a non-empty buffer every ``batch_interval``.

All buffer and statistics access happens under one lock, shared by the
append path, the timer thread and the delivery callbacks.
"""

import atexit
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from .payload import PayloadCodec
from .records import LogRecord
from .retry import RetryController
from .transport import Outcome

logger = logging.getLogger(__name__)

URGENT_ERROR_THRESHOLD = 10
OVERFLOW_FACTOR = 2
DEFAULT_DELIVERY_WORKERS = 4


@dataclass(frozen=True)
class SinkStatistics:
    """Point-in-time snapshot of sink counters."""

    successful_sends: int = 0
    failed_sends: int = 0
    buffer_size: int = 0
    last_send_time: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "successfulSends": self.successful_sends,
            "failedSends": self.failed_sends,
            "bufferSize": self.buffer_size,
            "lastSendTime": self.last_send_time.isoformat() if self.last_send_time else None,
        }


class BatchScheduler:
    """
    Stateful core of the sink.

    Args:
        codec: Serializes cut batches
        retry: Delivers serialized batches; None in test mode
        batch_size: Size trigger threshold
        batch_interval: Seconds between timer-triggered cuts
        test: Skip timer, workers and delivery; cuts count as successful sends
        max_workers: Concurrent batch deliveries
    """

    def __init__(
        self,
        codec: PayloadCodec,
        retry: RetryController | None,
        batch_size: int,
        batch_interval: float,
        test: bool = False,
        max_workers: int = DEFAULT_DELIVERY_WORKERS,
    ):
        if retry is None and not test:
            raise ValueError("retry controller is required outside test mode")

        self.codec = codec
        self.retry = retry
        self.batch_size = batch_size
        self.batch_interval = batch_interval
        self.test = test
        self.max_workers = max_workers

        self._buffer: list[LogRecord] = []
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._timer_thread: threading.Thread | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._closed = False
        self._disposed = False

        # Stats
        self._successful_sends = 0
        self._failed_sends = 0
        self._last_send_time: datetime | None = None

    def start(self):
        """Start the delivery pool and the batch timer (no-op in test mode)."""
        if self.test:
            logger.debug("Test mode - skipping delivery workers and batch timer")
            return

        self._executor = ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix="json-http-sink",
        )
        self._timer_thread = threading.Thread(
            target=self._timer_loop,
            name="json-http-sink-timer",
            daemon=True,
        )
        self._timer_thread.start()
        atexit.register(self.dispose)
        logger.debug(f"Batch timer started with interval: {self.batch_interval}s")

    def _timer_loop(self):
        """Cut a non-empty buffer every ``batch_interval`` until stopped."""
        while not self._stop.wait(self.batch_interval):
            try:
                self._on_timer()
            except Exception as e:
                logger.error(f"Error in batch timer: {e}", exc_info=True)

    def _on_timer(self):
        with self._lock:
            if self._closed or not self._buffer:
                return
            batch = self._take_batch()
        self._dispatch(batch)

    # ------------------------------------------------------------------
    # Buffer operations
    # ------------------------------------------------------------------

    def append(self, record: LogRecord):
        """Buffer ``record`` and cut a batch if a trigger fires."""
        with self._lock:
            if self._closed:
                return
            self._buffer.append(record)
            length = len(self._buffer)

            urgent = record.is_error and length >= URGENT_ERROR_THRESHOLD
            if not urgent and length < self.batch_size:
                return
            batch = self._take_batch()

        self._dispatch(batch)

    def _take_batch(self) -> list[LogRecord]:
        """Snapshot and clear the live buffer. Caller holds the lock."""
        batch = self._buffer
        self._buffer = []
        return batch

    def _dispatch(self, batch: list[LogRecord]) -> Future | None:
        """Hand a cut batch off for delivery. Returns None when already settled."""
        if self.test:
            logger.debug(f"Test mode: would send batch of {len(batch)} logs")
            self._record_success()
            return None

        try:
            return self._executor.submit(self._deliver, batch)
        except RuntimeError as e:
            # Workers are gone once the interpreter starts shutting down
            logger.debug(f"Delivering {len(batch)} log records inline: {e}")
            self._deliver(batch)
            return None

    def _deliver(self, batch: list[LogRecord]) -> bool:
        """Serialize and deliver one batch."""
        try:
            body = self.codec.encode(batch)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize batch of {len(batch)} logs: {e}")
            self._record_failure(batch, reinsert=True)
            return False

        outcome = self.retry.deliver_outcome(body)
        if outcome == Outcome.SUCCESS:
            self._record_success()
            logger.debug(f"Successfully sent {len(batch)} log records")
            return True

        # Client errors will fail the same way again, so never requeue them
        self._record_failure(batch, reinsert=outcome.retryable)
        return False

    def _record_success(self):
        with self._lock:
            self._successful_sends += 1
            self._last_send_time = datetime.now(UTC)

    def _record_failure(self, batch: list[LogRecord], reinsert: bool):
        """Count a failed batch and requeue it ahead of newer records if there is room."""
        with self._lock:
            self._failed_sends += 1
            closed = self._closed
            overflow = len(self._buffer) >= self.batch_size * OVERFLOW_FACTOR
            if reinsert and not closed and not overflow:
                self._buffer[:0] = batch

        if not reinsert:
            logger.error(f"Dropping {len(batch)} log records rejected by the endpoint")
        elif closed:
            logger.warning(f"Dropping {len(batch)} log records, sink is shut down")
        elif overflow:
            logger.warning(f"Dropping {len(batch)} log records due to buffer overflow")
        else:
            logger.debug(f"Requeued {len(batch)} log records after failed delivery")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def flush(self) -> bool:
        """
        Cut and deliver whatever is buffered on the calling thread.

        Runs without the worker pool, so it still works from ``atexit``
        after the interpreter has shut executors down.

        Returns:
            True if the buffer was empty or the batch was delivered.
        """
        with self._lock:
            if not self._buffer:
                return True
            batch = self._take_batch()

        if self.test:
            self._dispatch(batch)
            return True
        return self._deliver(batch)

    def dispose(self):
        """Stop the timer, flush, then release workers and transport."""
        if self._disposed:
            return
        self._disposed = True

        self._stop.set()
        if self._timer_thread is not None:
            self._timer_thread.join(timeout=self.batch_interval)

        self.flush()

        with self._lock:
            self._closed = True

        if self._executor is not None:
            self._executor.shutdown(wait=True)
        if self.retry is not None:
            self.retry.client.close()
        if not self.test:
            atexit.unregister(self.dispose)

        logger.debug("Batch scheduler disposed")

    @property
    def disposed(self) -> bool:
        return self._disposed

    def snapshot(self) -> SinkStatistics:
        """Get an immutable view of the current statistics."""
        with self._lock:
            return SinkStatistics(
                successful_sends=self._successful_sends,
                failed_sends=self._failed_sends,
                buffer_size=len(self._buffer),
                last_send_time=self._last_send_time,
            )
