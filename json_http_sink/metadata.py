"""
Application metadata and mapped diagnostic context (MDC) for shipped batches.

The sink reads from a MetadataProvider when it builds a payload: app version,
device id and session id go into the batch ``metadata`` block, and the MDC
snapshot is attached to each record as ``mdc``.
"""

import logging
import socket
import threading
import uuid

logger = logging.getLogger(__name__)


class MetadataProvider:
    """
    Source of batch metadata and the current MDC.

    The MDC is a process-wide key/value map guarded by a lock, so values
    put by the application thread are visible to the delivery threads that
    serialize batches.
    """

    def __init__(
        self,
        app_version: str | None = None,
        device_id: str | None = None,
        session_id: str | None = None,
    ):
        self.app_version = app_version
        self.device_id = device_id
        self.session_id = session_id or uuid.uuid4().hex
        self._mdc: dict[str, str] = {}
        self._lock = threading.Lock()

    def put_mdc(self, key: str, value: str):
        """Set an MDC value."""
        with self._lock:
            self._mdc[key] = str(value)

    def remove_mdc(self, key: str):
        """Remove an MDC value if present."""
        with self._lock:
            self._mdc.pop(key, None)

    def clear_mdc(self):
        """Remove all MDC values."""
        with self._lock:
            self._mdc.clear()

    def mdc_snapshot(self) -> dict[str, str]:
        """Return a copy of the current MDC."""
        with self._lock:
            return dict(self._mdc)

    @staticmethod
    def hostname() -> str:
        try:
            return socket.gethostname()
        except OSError as e:
            logger.debug(f"Could not resolve hostname: {e}")
            return "unknown"
