from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterator, Optional, Tuple, Type, TypeVar

import anyio

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff: base_delay, base_delay*multiplier, ..."""

    max_attempts: int = 5
    base_delay: float = 1.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")

    def delays(self) -> Iterator[float]:
        """Delay after each failed attempt, one per attempt."""
        delay = self.base_delay
        for _ in range(self.max_attempts):
            yield delay
            delay *= self.multiplier


class RetryExhausted(Exception):
    def __init__(self, attempts: int, last_error: Optional[BaseException]):
        super().__init__(f"gave up after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Sleep = anyio.sleep,
    label: str = "operation",
) -> T:
    """Run `operation` until it returns, sleeping between failed attempts.

    Exceptions outside `retry_on` propagate immediately. No sleep follows the
    final attempt.
    """

    last_error: Optional[BaseException] = None
    attempt = 0
    for attempt, delay in enumerate(policy.delays(), start=1):
        try:
            return await operation()
        except retry_on as e:
            last_error = e
            if attempt >= policy.max_attempts:
                break
            logger.warning("%s failed (attempt %d/%d): %s; retrying in %.1fs", label, attempt, policy.max_attempts, e, delay)
            await sleep(delay)

    raise RetryExhausted(attempt, last_error)
