"""
Retry policy — bounded attempts with a fixed delay.

Package-manager and marketplace hiccups are usually gone a couple of
seconds later, so the installer retries transient failures a few times
before giving up. The caller decides what counts as retryable.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Fixed-delay retry.

    Args:
        max_attempts: Total attempts, including the first one.
        delay: Seconds to wait between attempts.
        sleep: Sleep function (injected by tests).
    """

    max_attempts: int = 3
    delay: float = 2.0
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def run(
        self,
        operation: Callable[[int], T],
        should_retry: Callable[[T], bool],
        label: str = "operation",
    ) -> tuple[T, int]:
        """Call ``operation(attempt)`` until it is not retryable or attempts run out.

        Returns:
            ``(last_result, attempts_made)``.
        """
        attempt = 1
        while True:
            result = operation(attempt)
            if not should_retry(result):
                return result, attempt
            if attempt >= self.max_attempts:
                logger.warning("%s failed after %d attempts", label, attempt)
                return result, attempt

            logger.info(
                "%s failed (attempt %d/%d), retrying in %.1fs",
                label,
                attempt,
                self.max_attempts,
                self.delay,
            )
            if self.delay > 0:
                self.sleep(self.delay)
            attempt += 1
