"""
Bounded retry with exponential backoff.

Only errors flagged ``retryable`` are retried: TransportError, and ApiError
for 429 and 5xx responses. Validation, authentication, decode and other 4xx
failures propagate on the first attempt.

Usage:
    from armis_centrix.retry import RetryPolicy, call_with_retry

    envelope = call_with_retry(lambda: executor.execute("GET", path, token=token), RetryPolicy())
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from armis_centrix.errors import ArmisError
from armis_centrix.logging_config import get_logger, log_with_context

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry configuration.

    Attributes:
        max_attempts: Total attempts including the first one
        initial_backoff: Seconds to wait after the first failure
        max_backoff: Upper bound on any single wait
    """

    max_attempts: int = 3
    initial_backoff: float = 1.0
    max_backoff: float = 30.0

    def backoff(self, attempt: int) -> float:
        """Return the wait after the given zero-based failed attempt."""
        return float(min(self.initial_backoff * (2**attempt), self.max_backoff))


NO_RETRY = RetryPolicy(max_attempts=1)


def call_with_retry(
    operation: Callable[[], T],
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run ``operation`` until it succeeds, fails permanently, or runs out of attempts.

    Args:
        operation: Zero-argument callable performing one attempt
        policy: Attempt bound and backoff schedule
        sleep: Wait function, replaceable in tests

    Returns:
        The operation's result

    Raises:
        ArmisError: The last error when it is not retryable or attempts ran out
    """
    attempts = max(1, policy.max_attempts)
    for attempt in range(attempts):
        try:
            return operation()
        except ArmisError as e:
            if not e.retryable or attempt >= attempts - 1:
                raise

            backoff = policy.backoff(attempt)
            log_with_context(
                logger,
                "warning",
                "Transient Armis error, retrying",
                attempt=attempt + 1,
                max_attempts=attempts,
                backoff_seconds=backoff,
                error=str(e),
                error_type=type(e).__name__,
            )
            sleep(backoff)

    raise RuntimeError("Retry logic failed unexpectedly")
