"""
Task-level retry policy for moderation jobs.

Only exceptions trigger a retry. Inconclusive evaluations return normally and
are therefore never re-run.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from vidmod.config import ConfigurationError, Settings
from vidmod.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0
    factor: float = 2.0
    max_delay: float = 10.0
    jitter: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.MODERATION_MAX_ATTEMPTS,
            base_delay=settings.MODERATION_RETRY_BASE_DELAY,
            factor=settings.MODERATION_RETRY_FACTOR,
            max_delay=settings.MODERATION_RETRY_MAX_DELAY,
            jitter=settings.MODERATION_RETRY_JITTER,
        )

    def delay_for(self, attempt: int, rng: random.Random | None = None) -> float:
        """Delay after the given failed attempt (1-based)."""
        delay = self.base_delay * (self.factor ** (attempt - 1))
        if self.jitter:
            delay *= (rng or random).uniform(1.0, 2.0)
        return min(delay, self.max_delay)


# Retrying cannot fix these
NON_RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (ConfigurationError,)


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    give_up_on: tuple[type[BaseException], ...] = NON_RETRYABLE_ERRORS,
    operation_name: str = "operation",
) -> T:
    """
    Run operation until it returns, retrying raised exceptions per policy.

    Raises:
        The last exception once attempts are exhausted.
    """
    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await operation()

        except give_up_on as e:
            logger.error(
                f"{operation_name} failed with non-retryable error",
                attempt=attempt,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        except Exception as e:
            if attempt >= policy.max_attempts:
                logger.error(
                    f"{operation_name} failed after all retries",
                    attempts=attempt,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise

            delay = policy.delay_for(attempt)
            logger.warning(
                f"{operation_name} failed, retrying",
                attempt=attempt,
                max_attempts=policy.max_attempts,
                delay=round(delay, 3),
                error=str(e),
                error_type=type(e).__name__,
            )
            await sleep(delay)

    raise RuntimeError(f"{operation_name} retry loop exhausted")
