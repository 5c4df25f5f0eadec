"""
Bounded exponential-backoff retry for upstream calls.

Built on tenacity. The delay before attempt ``n + 1`` is
``min(initial_delay * multiplier ** (n - 1), max_delay)``; a
non-retryable error or the last attempt re-raises immediately.
"""
import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from tournoi.core.errors import is_retryable as default_is_retryable
from tournoi.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_INITIAL_DELAY = 1.0  # seconds
DEFAULT_MAX_DELAY = 10.0  # seconds
DEFAULT_MULTIPLIER = 2


def _log_before_sleep(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        f"Attempt {retry_state.attempt_number} failed, retrying in {delay:.1f}s: {error}"
    )


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    initial_delay: float = DEFAULT_INITIAL_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    multiplier: float = DEFAULT_MULTIPLIER,
    is_retryable: Callable[[BaseException], bool] = default_is_retryable,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> T:
    """
    Run ``operation`` with exponential-backoff retry.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        max_attempts: Total attempts including the first
        initial_delay: Delay after the first failure, in seconds
        max_delay: Upper bound on any single delay, in seconds
        multiplier: Backoff growth factor
        is_retryable: Predicate deciding whether an error may be retried
        sleep: Awaitable sleep, injectable for tests

    Returns:
        The operation's result

    Raises:
        The last error raised by ``operation``
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=initial_delay, exp_base=multiplier, max=max_delay),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_before_sleep,
        sleep=sleep or asyncio.sleep,
        reraise=True,
    )

    async def attempt() -> T:
        return await operation()

    return await retrying(attempt)
