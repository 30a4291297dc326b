"""Retry with exponential backoff for model API calls.

Rate limits, server errors and network failures are retried; authentication
failures never are. Two rate-limit failures in a row stop the retry loop
early and hand the error to an escalation callback, since waiting longer
rarely helps once an account is being throttled.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from alfred.core.errors import RateLimitError, UnauthorizedError, is_retryable_error

if TYPE_CHECKING:
    from alfred.config.schema import RetryConfig
    from alfred.core.cancel import CancellationToken

logger = logging.getLogger(__name__)

T = TypeVar("T")

OnRetry = Callable[[int, BaseException, float], None]
OnPersistentRateLimit = Callable[[BaseException], None]

# Consecutive rate-limit failures that end the retry loop
PERSISTENT_RATE_LIMIT_THRESHOLD = 2


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff parameters.

    Attributes:
        max_attempts: Total attempts, including the first.
        initial_delay: Seconds before the first retry.
        max_delay: Upper bound on any single delay.
        backoff_factor: Multiplier applied after each retry.
    """

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_factor: float = 2.0

    @classmethod
    def from_config(cls, config: RetryConfig) -> RetryPolicy:
        return cls(
            max_attempts=config.max_attempts,
            initial_delay=config.initial_delay,
            max_delay=config.max_delay,
            backoff_factor=config.backoff_factor,
        )


def is_rate_limit_error(error: BaseException) -> bool:
    if isinstance(error, RateLimitError):
        return True
    return "429" in str(error)


async def _sleep(delay: float, cancel_token: CancellationToken | None) -> None:
    """Sleep for delay seconds, waking early (and raising) on cancellation."""
    if cancel_token is None:
        await asyncio.sleep(delay)
        return

    cancel_token.raise_if_cancelled()
    waiter = asyncio.ensure_future(cancel_token.wait())
    try:
        await asyncio.wait({waiter}, timeout=delay)
    finally:
        waiter.cancel()
    cancel_token.raise_if_cancelled()


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    should_retry: Callable[[BaseException], bool] = is_retryable_error,
    on_retry: OnRetry | None = None,
    on_persistent_rate_limit: OnPersistentRateLimit | None = None,
    cancel_token: CancellationToken | None = None,
) -> T:
    """Call fn until it succeeds, the error is not retryable, or attempts run out.

    Args:
        fn: Zero-argument coroutine factory; called once per attempt.
        policy: Backoff parameters (defaults to RetryPolicy()).
        should_retry: Decides whether an error may be retried.
        on_retry: Called as on_retry(attempt, error, delay) before each wait.
        on_persistent_rate_limit: Called with the error when rate limiting
            persists across consecutive attempts; the error is then raised.
        cancel_token: Interrupts backoff waits.

    Returns:
        The result of the first successful call.

    Raises:
        The last error from fn, or asyncio.CancelledError if cancelled.
    """
    policy = policy or RetryPolicy()
    delay = policy.initial_delay
    consecutive_rate_limits = 0

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await fn()
        except UnauthorizedError:
            raise
        except Exception as e:
            if is_rate_limit_error(e):
                consecutive_rate_limits += 1
            else:
                consecutive_rate_limits = 0

            if consecutive_rate_limits >= PERSISTENT_RATE_LIMIT_THRESHOLD:
                logger.warning("Persistent rate limiting after %d attempts", attempt)
                if on_persistent_rate_limit is not None:
                    on_persistent_rate_limit(e)
                raise

            if attempt >= policy.max_attempts or not should_retry(e):
                raise

            logger.warning(
                "Attempt %d/%d failed (%s), retrying in %.1fs",
                attempt,
                policy.max_attempts,
                e,
                delay,
            )
            if on_retry is not None:
                on_retry(attempt, e, delay)
            await _sleep(delay, cancel_token)
            delay = min(delay * policy.backoff_factor, policy.max_delay)

    # max_attempts >= 1, so the loop always returns or raises
    raise RuntimeError("retry loop exited without a result")
