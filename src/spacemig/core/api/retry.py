"""
Retry policy with exponential backoff for Management API requests.

The API enforces a per-token rate limit and answers with 429 when it is
exceeded. Reads are also retried on transient failures (5xx, timeouts,
connection errors). Writes are only retried on 429, because a 5xx or a
dropped connection after a POST may mean the write was applied.

Configuration:
    - Default retries: 3 attempts
    - Default base delay: 1.0 seconds
    - Default multiplier: 2.0x per retry
    - Jitter: Random variance of ±20% added to delay
"""

from __future__ import annotations

import logging
import random

import httpx

logger = logging.getLogger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class RetryPolicy:
    """
    Configuration for retry behavior.

    Attributes:
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Initial delay in seconds before first retry (default: 1.0)
        multiplier: Exponential backoff multiplier (default: 2.0)
        jitter: Whether to add jitter to delays (default: True)
        jitter_ratio: Random variance ratio for jitter (default: 0.2 = ±20%)
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        multiplier: float = 2.0,
        jitter: bool = True,
        jitter_ratio: float = 0.2,
    ) -> None:
        """
        Initialize retry configuration.

        Raises:
            ValueError: If parameters are invalid
        """
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if base_delay <= 0:
            raise ValueError("base_delay must be positive")
        if multiplier < 1.0:
            raise ValueError("multiplier must be >= 1.0")
        if not 0.0 <= jitter_ratio <= 1.0:
            raise ValueError("jitter_ratio must be between 0.0 and 1.0")

        self.max_retries = max_retries
        self.base_delay = base_delay
        self.multiplier = multiplier
        self.jitter = jitter
        self.jitter_ratio = jitter_ratio

    def calculate_delay(self, attempt: int, retry_after: float | None = None) -> float:
        """
        Calculate delay for a given retry attempt.

        Uses exponential backoff: delay = base_delay * (multiplier ^ attempt).
        A server supplied ``Retry-After`` wins when it is longer.

        Args:
            attempt: Retry attempt number (0-indexed)
            retry_after: Seconds requested by the server, if any

        Returns:
            Delay in seconds before next retry
        """
        delay = self.base_delay * (self.multiplier**attempt)

        if self.jitter:
            variance = delay * self.jitter_ratio
            delay = delay + random.uniform(-variance, variance)

        if retry_after is not None:
            delay = max(delay, retry_after)

        return max(0.0, delay)

    def should_retry_status(self, method: str, status_code: int) -> bool:
        """Decide whether a response status warrants another attempt."""
        if status_code == 429:
            return True
        return method.upper() in SAFE_METHODS and 500 <= status_code < 600

    def should_retry_exception(self, method: str, exception: Exception) -> bool:
        """Decide whether a request exception warrants another attempt."""
        if method.upper() not in SAFE_METHODS:
            return False
        return isinstance(exception, (httpx.TimeoutException, httpx.TransportError))


def parse_retry_after(response: httpx.Response) -> float | None:
    """Read a numeric ``Retry-After`` header, ignoring HTTP-date forms."""
    value = response.headers.get("retry-after")
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


__all__ = ["RetryPolicy", "SAFE_METHODS", "parse_retry_after"]
