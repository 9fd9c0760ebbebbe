"""
Retry with exponential backoff
Generic over any awaitable operation; knows nothing about HTTP or providers
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, FrozenSet, Optional, TypeVar

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 2
    initial_delay: float = 1.0
    retryable_statuses: FrozenSet[int] = field(
        default_factory=lambda: frozenset({408, 429, 500, 502, 503})
    )


def _status_of(error: BaseException) -> Optional[int]:
    status = getattr(error, "status_code", None)
    if isinstance(status, int) and not isinstance(status, bool):
        return status
    return None


def is_retryable(error: BaseException, policy: RetryPolicy) -> bool:
    """Errors without a status code are treated as transient"""
    status = _status_of(error)
    if status is None:
        return True
    return status in policy.retryable_statuses


def _log_retry(retry_state: RetryCallState, policy: RetryPolicy):
    error = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        f"Attempt {retry_state.attempt_number}/{policy.max_attempts} failed ({error!r}), retrying in {delay:.2f}s"
    )


def build_retrying(
    policy: RetryPolicy,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> AsyncRetrying:
    # Delay before attempt n+1 is initial_delay * 2 ** (n - 1)
    return AsyncRetrying(
        reraise=True,
        stop=stop_after_attempt(max(1, policy.max_attempts)),
        wait=wait_exponential(multiplier=policy.initial_delay, exp_base=2),
        retry=retry_if_exception(lambda error: is_retryable(error, policy)),
        before_sleep=lambda retry_state: _log_retry(retry_state, policy),
        sleep=sleep,
    )


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run ``operation`` until it succeeds or the policy says stop.

    The last error is re-raised unchanged when attempts are exhausted or
    when it carries a status code outside ``retryable_statuses``.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        policy: Attempt limit, initial delay and retryable status codes
        sleep: Awaitable delay function (injectable for tests)

    Returns:
        Whatever the first successful attempt returns
    """
    return await build_retrying(policy, sleep)(operation)
