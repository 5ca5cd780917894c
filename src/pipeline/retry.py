# src/pipeline/retry.py — v1
"""Per-stage retry policy and typed stage results.

Stages return ``Ok``, ``RetryableError`` or ``FatalError`` instead of
looping internally; ``run_with_retry`` drives the loop with a bounded (or
explicitly unbounded) policy.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ok:
    value: Any = None


@dataclass(frozen=True)
class RetryableError:
    reason: str
    error: BaseException | None = field(default=None, compare=False)


@dataclass(frozen=True)
class FatalError:
    reason: str
    error: BaseException | None = field(default=None, compare=False)


StageResult = Union[Ok, RetryableError, FatalError]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration for one pipeline stage.

    ``max_attempts=None`` retries until the stage succeeds or turns fatal.
    """

    delay_s: float
    max_attempts: int | None = None
    backoff_factor: float = 1.0
    max_delay_s: float = 30.0

    def delay_for(self, attempt: int) -> float:
        """Delay after the given failed attempt (1-based)."""
        delay = self.delay_s * (self.backoff_factor ** (attempt - 1))
        return min(delay, self.max_delay_s)

    def exhausted(self, attempts: int) -> bool:
        return self.max_attempts is not None and attempts >= self.max_attempts


async def run_with_retry(
    step: Callable[[], Awaitable[StageResult]],
    policy: RetryPolicy,
    stage: str = "stage",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> StageResult:
    """Run ``step`` until it returns Ok/FatalError or the policy is exhausted.

    Returns:
        The final StageResult. A RetryableError is returned only when the
        policy's attempt budget is used up.
    """
    attempts = 0

    while True:
        result = await step()
        attempts += 1
        if not isinstance(result, RetryableError):
            return result

        if policy.exhausted(attempts):
            logger.error(
                "%s failed after %d attempts: %s", stage, attempts, result.reason,
            )
            return result

        delay = policy.delay_for(attempts)
        limit = policy.max_attempts if policy.max_attempts is not None else "inf"
        logger.warning(
            "%s failed (attempt %d/%s): %s, retrying in %.1fs",
            stage, attempts, limit, result.reason, delay,
        )
        await sleep(delay)
