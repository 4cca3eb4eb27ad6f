"""Task runner wrapping every remote step of an export or import.

Each step is checked against the cancellation token, logged at debug level,
and optionally retried on transient failures.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeVar

from process_migrator import config
from process_migrator.models.migration_error import CancellationError
from process_migrator.utils.cancellation import CancellationToken
from process_migrator.utils.retry_manager import RetryConfig, RetryManager

T = TypeVar("T")


class TaskRunner:
    """Runs named steps with cancellation checks, logging and retries."""

    def __init__(
        self,
        token: CancellationToken | None = None,
        retry_config: RetryConfig | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.token = token or CancellationToken()
        self.retry_config = retry_config or RetryConfig()
        self._retry_manager = RetryManager(self.retry_config, sleep=sleep or time.sleep)

    def _check_cancelled(self) -> None:
        if self.token.is_cancelled:
            raise CancellationError

    def run(self, operation: Callable[[], T], label: str) -> T:
        """Run ``operation`` as step ``label``, retrying transient failures when enabled."""
        self._check_cancelled()
        config.logger.debug("Begin step '%s'.", label)
        if self.retry_config.enabled:
            result = self._retry_manager.execute(operation, label)
        else:
            result = operation()
        config.logger.debug("Finished step '%s'.", label)
        return result

    def run_no_retry(self, operation: Callable[[], T], label: str) -> T:
        """Run ``operation`` as step ``label`` without retrying."""
        self._check_cancelled()
        config.logger.debug("Begin step '%s'.", label)
        result = operation()
        config.logger.debug("Finished step '%s'.", label)
        return result
