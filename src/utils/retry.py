"""Bounded async retry with per-call-site backoff and retry predicates."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# backoff(attempt, error) -> seconds to wait; attempt is 1-based
BackoffFn = Callable[[int, BaseException], float]
RetryablePredicate = Callable[[BaseException], bool]


def constant_step_backoff(step_seconds: float) -> BackoffFn:
    """Wait ``attempt * step_seconds`` after each failed attempt."""

    def backoff(attempt: int, _error: BaseException) -> float:
        return attempt * step_seconds

    return backoff


def remaining_attempts_backoff(max_attempts: int, step_seconds: float) -> BackoffFn:
    """Wait longer as the attempt budget runs out.

    The delay is ``(max_attempts + 1 - attempts_remaining) * step_seconds``,
    so with 3 attempts and a 2s step the waits are 4s then 6s.
    """

    def backoff(attempt: int, _error: BaseException) -> float:
        attempts_remaining = max_attempts - attempt
        return (max_attempts + 1 - attempts_remaining) * step_seconds

    return backoff


@dataclass
class RetryPolicy:
    """How many times to try, how long to wait, and which errors to retry.

    Example:
        policy = RetryPolicy(
            max_attempts=3,
            backoff=constant_step_backoff(1.0),
            retryable=lambda e: isinstance(e, httpx.TransportError),
        )
        result = await policy.run(client.get, url, description="fetch image")
    """

    max_attempts: int = 3
    backoff: BackoffFn = field(default_factory=lambda: constant_step_backoff(1.0))
    retryable: RetryablePredicate = lambda _e: True
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    async def run(
        self,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        description: str = "",
        on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
        **kwargs: Any,
    ) -> T:
        """Call ``func`` until it succeeds or the budget is spent.

        Non-retryable errors and the final failure are re-raised unchanged.
        """
        label = description or getattr(func, "__name__", "call")
        attempt = 0
        while True:
            attempt += 1
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                if not self.retryable(e) or attempt >= self.max_attempts:
                    if attempt > 1:
                        logger.warning(
                            f"{label} failed after {attempt} attempt(s): {e}"
                        )
                    raise
                delay = max(0.0, float(self.backoff(attempt, e)))
                logger.info(
                    f"{label} attempt {attempt}/{self.max_attempts} "
                    f"failed ({e}); retrying in {delay:.1f}s"
                )
                if on_retry:
                    on_retry(attempt, e, delay)
                await self.sleep(delay)
