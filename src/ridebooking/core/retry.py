"""Retry utilities with a fixed backoff schedule."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from .exceptions import TransientError

T = TypeVar("T")
logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


def _is_transient(error: Exception) -> bool:
    return isinstance(error, TransientError)


@dataclass(frozen=True)
class RetryPolicy:
    """How many attempts to make and how long to wait between them.

    ``delays[i]`` is the wait after failed attempt ``i + 1``; when there are
    more attempts than delays, the last delay is reused.
    """

    max_attempts: int = 3
    delays: tuple[float, ...] = (1.0, 2.0, 4.0)
    retryable: Callable[[Exception], bool] = field(default=_is_transient)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if not self.delays:
            raise ValueError("delays must not be empty")

    def delay_for(self, attempt: int) -> float:
        """Delay after the given zero-based failed attempt."""
        return self.delays[min(attempt, len(self.delays) - 1)]


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    operation_name: str = "operation",
    sleep: SleepFunc = asyncio.sleep,
    on_retry: Callable[[Exception, int], None] | None = None,
) -> T:
    """Execute async operation, retrying failures the policy marks retryable.

    Cancellation of the calling task propagates immediately: ``CancelledError``
    is not an ``Exception`` and therefore never retried, and a cancel that
    lands during the backoff sleep ends the loop.
    """
    if policy is None:
        policy = RetryPolicy()

    last_exception: Exception | None = None

    for attempt in range(policy.max_attempts):
        try:
            return await operation()
        except Exception as e:
            last_exception = e
            if not policy.retryable(e):
                raise
            if attempt == policy.max_attempts - 1:
                logger.error(f"{operation_name} failed after {policy.max_attempts} attempts: {e}")
                raise

            delay = policy.delay_for(attempt)
            logger.warning(
                f"{operation_name} failed (attempt {attempt + 1}/{policy.max_attempts}), "
                f"retrying in {delay:.1f}s: {e}"
            )

            if on_retry:
                on_retry(e, attempt)

            await sleep(delay)

    raise last_exception  # type: ignore
