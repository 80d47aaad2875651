"""
HTTP transport for shipping serialized batches.

DeliveryClient issues exactly one POST per call and classifies the result.
It never retries; that is RetryController's job.
"""

import logging
from enum import Enum

import httpx

logger = logging.getLogger(__name__)


class Outcome(Enum):
    """Result of a single delivery attempt."""

    SUCCESS = "success"  # 2xx
    CLIENT_ERROR = "client_error"  # 4xx, repeating the request cannot help
    SERVER_ERROR = "server_error"  # 5xx or any other non-2xx
    TIMEOUT = "timeout"
    TRANSPORT_ERROR = "transport_error"  # connection, DNS, TLS

    @property
    def retryable(self) -> bool:
        return self in (Outcome.SERVER_ERROR, Outcome.TIMEOUT, Outcome.TRANSPORT_ERROR)


def join_url(base: str, path: str | None) -> str:
    """
    Append ``path`` to ``base`` with exactly one separating slash.

    Only the join point is normalized; the scheme's ``//`` is left alone.
    """
    if not path:
        return base
    return f"{base.rstrip('/')}/{path.lstrip('/')}"


def classify_status(status_code: int) -> Outcome:
    """Map an HTTP status code to an Outcome."""
    if 200 <= status_code < 300:
        return Outcome.SUCCESS
    if 400 <= status_code < 500:
        return Outcome.CLIENT_ERROR
    return Outcome.SERVER_ERROR


class DeliveryClient:
    """
    Thin wrapper around a pooled ``httpx.Client``.

    Args:
        timeout: Default per-request timeout in seconds
        transport: Optional httpx transport (e.g. ``httpx.MockTransport``)
    """

    def __init__(self, timeout: float, transport: httpx.BaseTransport | None = None):
        self.timeout = timeout
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def send(
        self,
        url: str,
        headers: dict[str, str],
        body: bytes,
        timeout: float | None = None,
    ) -> Outcome:
        """POST ``body`` to ``url`` once and report what happened."""
        try:
            response = self._client.post(
                url,
                content=body,
                headers=headers,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except httpx.TimeoutException as e:
            logger.warning(f"Timeout sending logs to {url}: {e!r}")
            return Outcome.TIMEOUT
        except httpx.TransportError as e:
            logger.warning(f"Transport error sending logs to {url}: {e!r}")
            return Outcome.TRANSPORT_ERROR
        except httpx.InvalidURL as e:
            # A malformed target never succeeds on repetition
            logger.error(f"Invalid log endpoint {url}: {e}")
            return Outcome.CLIENT_ERROR

        outcome = classify_status(response.status_code)
        if outcome == Outcome.CLIENT_ERROR:
            logger.error(f"Client error sending logs: {response.status_code} {response.text[:200]}")
        elif outcome == Outcome.SERVER_ERROR:
            logger.warning(f"Server error sending logs: {response.status_code}")
        return outcome

    def close(self):
        """Release pooled connections."""
        self._client.close()
