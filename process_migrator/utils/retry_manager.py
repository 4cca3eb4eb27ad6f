"""Retry mechanisms with exponential backoff for remote operations.

This module provides retry logic for handling transient failures in API calls
during export and import. Which errors count as transient is decided by an
injectable classifier.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from secrets import SystemRandom
from typing import TypeVar

from process_migrator import config
from process_migrator.models.migration_error import RetryExhaustedError, is_transient_error

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    enabled: bool = True
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    jitter: bool = True
    jitter_range: float = 0.1
    backoff_multiplier: float = 2.0
    is_retryable: Callable[[BaseException], bool] = field(default=is_transient_error)

    @classmethod
    def from_options(cls, enabled: bool, max_retries: int, base_delay_ms: int) -> "RetryConfig":
        """Build a retry configuration from the configuration file options."""
        return cls(enabled=enabled, max_retries=max_retries, base_delay=base_delay_ms / 1000.0)


class RetryManager:
    """Retry manager using exponential backoff with jitter."""

    def __init__(
        self,
        config_param: RetryConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the retry manager.

        Args:
            config_param: Retry configuration. Uses defaults if not provided.
            sleep: Function used to wait between attempts.

        """
        self.config = config_param or RetryConfig()
        self._sleep = sleep
        # Non-crypto jitter generator that satisfies linting rules
        self._rng = SystemRandom()

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay in seconds before retry number ``attempt`` (0-based)."""
        delay = self.config.base_delay * (self.config.backoff_multiplier**attempt)
        delay = min(delay, self.config.max_delay)

        # Add jitter to spread simultaneous retries
        if self.config.jitter:
            jitter_amount = delay * self.config.jitter_range
            delay += self._rng.uniform(0, jitter_amount)

        return max(0.0, delay)

    def should_retry(self, exception: BaseException, attempt: int) -> bool:
        """Determine if an operation should be retried after ``attempt`` retries."""
        if not self.config.enabled:
            return False
        if attempt >= self.config.max_retries:
            return False
        return self.config.is_retryable(exception)

    def execute(self, func: Callable[[], T], label: str) -> T:
        """Execute ``func`` retrying transient failures.

        Non-retryable errors propagate unchanged. When a transient error is
        still raised after the last retry a :class:`RetryExhaustedError`
        chained to it is raised instead.

        Args:
            func: Zero-argument callable to execute
            label: Step name used in log messages

        Returns:
            The value returned by ``func``

        """
        attempt = 0
        while True:
            try:
                return func()
            except Exception as e:
                if not self.config.enabled or not self.config.is_retryable(e):
                    raise
                if not self.should_retry(e, attempt):
                    config.logger.error(
                        "Step '%s' failed after %d attempts: %s",
                        label,
                        attempt + 1,
                        e,
                    )
                    raise RetryExhaustedError(label, attempt + 1, e) from e

                delay = self.calculate_delay(attempt)
                attempt += 1
                config.logger.warning(
                    "Transient failure in step '%s' (%s). Retry %d of %d in %.2fs...",
                    label,
                    e,
                    attempt,
                    self.config.max_retries,
                    delay,
                )
                self._sleep(delay)
