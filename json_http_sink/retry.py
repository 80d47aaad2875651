"""
Bounded retry with backoff for batch delivery.

Usage:
    controller = RetryController(
        client=DeliveryClient(timeout=30.0),
        url="https://logs.example.com/ingest",
        headers={"Content-Type": "application/json"},
        max_retries=3,
        backoff=BackoffConfig(initial_delay=2.0),
    )
    delivered = controller.deliver(body)

Each call to ``deliver`` owns its own backoff state, so concurrent batches
on different worker threads never share a delay sequence.
"""

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass

from .transport import DeliveryClient, Outcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackoffConfig:
    """Configuration for retry delays."""

    initial_delay: float = 2.0  # Delay before the first retry, in seconds
    multiplier: float = 2.0  # 1.0 disables exponential growth
    max_delay: float | None = None  # None means uncapped
    jitter: float = 0.0  # Random jitter factor (0-1)


class ExponentialBackoff:
    """
    Exponential backoff with optional cap and jitter.

    Increases delay between retry attempts by ``multiplier`` after every
    call to ``next_delay``.
    """

    def __init__(self, config: BackoffConfig | None = None):
        self.config = config or BackoffConfig()
        self._attempt = 0

    @property
    def current_delay(self) -> float:
        """Get current delay without incrementing."""
        return self._calculate_delay(self._attempt)

    def _calculate_delay(self, attempt: int) -> float:
        delay = self.config.initial_delay * (self.config.multiplier**attempt)
        if self.config.max_delay is not None:
            delay = min(delay, self.config.max_delay)

        if self.config.jitter > 0:
            jitter_range = delay * self.config.jitter
            delay += random.uniform(-jitter_range, jitter_range)

        return max(0.0, delay)

    def next_delay(self) -> float:
        """Get the next delay and increment attempt counter."""
        delay = self._calculate_delay(self._attempt)
        self._attempt += 1
        return delay

    def reset(self):
        """Reset backoff to initial state."""
        self._attempt = 0


class RetryController:
    """
    Drives DeliveryClient with bounded attempts.

    A request is tried once plus up to ``max_retries`` more times. Client
    errors stop immediately; server errors, timeouts and transport failures
    are retried after the current backoff delay.
    """

    def __init__(
        self,
        client: DeliveryClient,
        url: str,
        headers: dict[str, str],
        max_retries: int,
        backoff: BackoffConfig,
        timeout: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.url = url
        self.headers = headers
        self.max_retries = max_retries
        self.backoff = backoff
        self.timeout = timeout
        self._sleep = sleep

    @classmethod
    def backoff_for(cls, retry_delay: float, exponential: bool) -> BackoffConfig:
        """Backoff that doubles from ``retry_delay`` when ``exponential`` is set."""
        return BackoffConfig(initial_delay=retry_delay, multiplier=2.0 if exponential else 1.0)

    def deliver_outcome(self, body: bytes) -> Outcome:
        """Deliver ``body`` and return the outcome of the last attempt."""
        backoff = ExponentialBackoff(self.backoff)
        attempts = 0
        outcome = Outcome.TRANSPORT_ERROR

        while attempts <= self.max_retries:
            outcome = self.client.send(self.url, self.headers, body, self.timeout)

            if outcome == Outcome.SUCCESS:
                return outcome
            if outcome == Outcome.CLIENT_ERROR:
                return outcome

            attempts += 1
            logger.warning(
                f"Log delivery failed ({outcome.value}), attempt {attempts}/{self.max_retries + 1}"
            )
            if attempts <= self.max_retries:
                self._sleep(backoff.next_delay())

        return outcome

    def deliver(self, body: bytes) -> bool:
        """Return True if ``body`` was ultimately delivered."""
        return self.deliver_outcome(body) == Outcome.SUCCESS
