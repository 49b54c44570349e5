"""
Bounded retry for flaky upstream calls (listing sources, data providers).
"""
import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 0.5  # seconds before the second attempt
    factor: float = 2.0  # 1.0 gives a fixed delay
    max_delay: float = 10.0
    jitter: float = 0.0

    def delay_for(self, attempt: int) -> float:
        """Delay after the given zero-based failed attempt."""
        delay = min(self.base_delay * (self.factor ** attempt), self.max_delay)
        if self.jitter:
            delay += random.uniform(0, self.jitter)
        return delay


DEFAULT_RETRY_POLICY = RetryPolicy()


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    retry_exceptions: Iterable[Type[BaseException]] = (Exception,),
    label: Optional[str] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Await fn() up to policy.max_attempts times. The last error is re-raised
    once attempts are exhausted. Cancellation is never retried.
    """
    if policy.max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    retry_on = tuple(retry_exceptions)
    for attempt in range(policy.max_attempts):
        try:
            return await fn()
        except asyncio.CancelledError:
            raise
        except retry_on as e:
            if attempt >= policy.max_attempts - 1:
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                "%s failed (attempt %s/%s): %s. Retrying in %.2fs",
                label or getattr(fn, "__name__", "call"),
                attempt + 1,
                policy.max_attempts,
                e,
                delay,
            )
            await sleep(delay)
    raise RuntimeError("unreachable")  # pragma: no cover
