from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger("payouts.retry")

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 4000
    backoff_multiplier: float = 2.0

    def delay_seconds(self, attempt: int) -> float:
        # attempt is 1-based: 1s, 2s, 4s (capped)
        delay_ms = self.base_delay_ms * (self.backoff_multiplier ** max(0, attempt - 1))
        return min(delay_ms, self.max_delay_ms) / 1000.0


@dataclass
class RetryOutcome(Generic[T]):
    success: bool
    attempts: int
    value: Optional[T] = None
    error: Optional[BaseException] = None


def _never(_: BaseException) -> bool:
    return False


def with_retry(
    fn: Callable[[], T],
    *,
    policy: RetryPolicy = RetryPolicy(),
    is_retryable: Callable[[BaseException], bool] = _never,
    sleep: Callable[[float], None] = time.sleep,
) -> RetryOutcome[T]:
    """
    Run fn, retrying while is_retryable(error) holds and attempts remain.
    Only Exception subclasses are caught; KeyboardInterrupt/SystemExit propagate.
    """
    attempts = max(1, int(policy.max_attempts))
    last_error: Optional[BaseException] = None

    for attempt in range(1, attempts + 1):
        try:
            return RetryOutcome(success=True, attempts=attempt, value=fn())
        except Exception as exc:
            last_error = exc
            if attempt == attempts or not is_retryable(exc):
                return RetryOutcome(success=False, attempts=attempt, error=exc)

            delay = policy.delay_seconds(attempt)
            logger.info("attempt %s failed, retrying in %.1fs: %s", attempt, delay, exc)
            sleep(delay)

    return RetryOutcome(success=False, attempts=attempts, error=last_error)


def retry_with_logging(
    operation: str,
    fn: Callable[[], T],
    *,
    policy: RetryPolicy = RetryPolicy(),
    is_retryable: Callable[[BaseException], bool] = _never,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Return fn's value, or re-raise the last classified error."""
    outcome = with_retry(fn, policy=policy, is_retryable=is_retryable, sleep=sleep)
    if outcome.success:
        if outcome.attempts > 1:
            logger.info("%s succeeded after %s attempts", operation, outcome.attempts)
        return outcome.value  # type: ignore[return-value]

    logger.warning("%s failed after %s attempts: %s", operation, outcome.attempts, outcome.error)
    assert outcome.error is not None
    raise outcome.error
