"""
Bounded retry with exponential backoff for provider calls.

Attempts are strictly sequential. The delay after failed attempt n
(1-indexed) is:

    min(initial_delay * backoff_multiplier ** (n - 1), max_delay)

Scheduling is delegated to tenacity (stop_after_attempt plus
wait_exponential, no jitter). No delay before the first attempt; when
attempts run out the last error is re-raised unwrapped, not as RetryError.

Usage:
    from payments.retry import RetryPolicy, with_retry
    from payments.exceptions import is_retryable_provider_error

    policy = RetryPolicy.from_settings()
    result = with_retry(
        lambda: adapter.create_payment(params),
        **policy.as_kwargs(),
        retry_if=is_retryable_provider_error,
    )
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, TypeVar

from django.conf import settings
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from tenacity import RetryCallState

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry parameters; delays are in seconds.

    The default preset makes 3 attempts with delays of 0.1s and 0.2s.
    """

    max_attempts: int = 3
    initial_delay: float = 0.1
    max_delay: float = 0.5
    backoff_multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must not be negative")

    @classmethod
    def from_settings(cls) -> RetryPolicy:
        return cls(
            max_attempts=settings.PAYMENT_RETRY_MAX_ATTEMPTS,
            initial_delay=settings.PAYMENT_RETRY_INITIAL_DELAY_SECONDS,
            max_delay=settings.PAYMENT_RETRY_MAX_DELAY_SECONDS,
            backoff_multiplier=settings.PAYMENT_RETRY_BACKOFF_MULTIPLIER,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay after failed attempt number `attempt` (1-indexed)."""
        return min(self.initial_delay * self.backoff_multiplier ** (attempt - 1), self.max_delay)

    def as_kwargs(self) -> dict[str, float]:
        return asdict(self)


def with_retry(
    operation: Callable[[], T],
    *,
    max_attempts: int,
    initial_delay: float,
    max_delay: float,
    backoff_multiplier: float,
    on_retry: Callable[[Exception, int, float], None] | None = None,
    retry_if: Callable[[Exception], bool] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run operation until it succeeds or attempts are exhausted.

    Args:
        operation: Zero-argument callable to run
        max_attempts: Total attempts, including the first
        initial_delay: Delay after the first failure, in seconds
        max_delay: Upper bound for any delay, in seconds
        backoff_multiplier: Growth factor between consecutive delays
        on_retry: Observer called as on_retry(error, attempt, delay) before
            sleeping; exceptions it raises are logged and ignored
        retry_if: Predicate; when it returns False the error is re-raised
            immediately
        sleep: Sleep function, injectable for tests

    Returns:
        The operation's return value

    Raises:
        Exception: The last error raised by operation, unmodified
    """
    policy = RetryPolicy(
        max_attempts=max_attempts,
        initial_delay=initial_delay,
        max_delay=max_delay,
        backoff_multiplier=backoff_multiplier,
    )

    def before_sleep(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception()
        attempt = retry_state.attempt_number
        delay = retry_state.next_action.sleep
        if on_retry is not None:
            try:
                on_retry(error, attempt, delay)
            except Exception:
                logger.warning("on_retry hook raised", exc_info=True)

        logger.info(
            "Retrying operation",
            extra={"attempt": attempt, "delay": delay, "error": str(error)},
        )

    retryer = Retrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_exponential(
            multiplier=policy.initial_delay,
            exp_base=policy.backoff_multiplier,
            max=policy.max_delay,
        ),
        retry=retry_if_exception(retry_if or (lambda error: True)),
        before_sleep=before_sleep,
        sleep=sleep,
        reraise=True,
    )
    return retryer(operation)
