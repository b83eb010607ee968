"""Retry policy and executor for upstream calls.

The policy is built once from settings and shared, frozen, by every Backend
Client call. The executor drives an operation that reports each attempt as a
Result: Ok ends the loop, a retryable Err sleeps ``policy.delay(attempt)`` and
tries again, anything else (or the last attempt) is returned as-is with the
attempt count stamped on the error.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Annotated, Callable, TypeVar

from pydantic import BaseModel, ConfigDict, Field, NonNegativeFloat, computed_field, model_validator

from leadgate.foundation.errors import Err, GatewayError, Result
from leadgate.runtime.observability import get_logger

from .backoff import Backoff, ExponentialBackoff

if TYPE_CHECKING:
    from collections.abc import Awaitable

T = TypeVar("T")

Sleep = Callable[[float], "Awaitable[None]"]

log = get_logger("leadgate.retry")


class RetryPolicy(BaseModel):
    """Immutable retry configuration.

    Attributes:
        max_attempts: Total attempts including the first (>= 1)
        initial_delay: Sleep after the first failed attempt
        max_delay: Cap on any single sleep
        backoff_factor: Growth per attempt (>= 1)

    Example:
        >>> policy = RetryPolicy(max_attempts=4, initial_delay=1.0, max_delay=3.0)
        >>> [policy.delay(n) for n in (1, 2, 3)]
        [1.0, 2.0, 3.0]
    """

    model_config = ConfigDict(
        frozen=True,
        validate_default=True,
        extra="forbid",
        revalidate_instances="never",
        json_schema_extra={
            "title": "Retry Policy",
            "examples": [{"max_attempts": 3, "initial_delay": 1.0, "max_delay": 10.0, "backoff_factor": 2.0}],
        },
    )

    max_attempts: Annotated[int, Field(ge=1, le=10)] = 3
    initial_delay: NonNegativeFloat = 1.0
    max_delay: NonNegativeFloat = 10.0
    backoff_factor: Annotated[float, Field(ge=1.0)] = 2.0

    @model_validator(mode="after")
    def _cap_not_below_initial(self) -> RetryPolicy:
        if self.max_delay < self.initial_delay:
            raise ValueError(f"max_delay ({self.max_delay}) must be >= initial_delay ({self.initial_delay})")
        return self

    @computed_field
    @property
    def is_disabled(self) -> bool:
        return self.max_attempts == 1

    @property
    def backoff(self) -> Backoff:
        return ExponentialBackoff(initial=self.initial_delay, max_delay=self.max_delay, factor=self.backoff_factor)

    def delay(self, attempt: int) -> float:
        """Sleep after failed attempt ``attempt`` (1-based)."""
        return self.backoff.delay(attempt)

    def total_delay(self) -> float:
        """Sum of every sleep the policy can schedule."""
        return sum(self.delay(n) for n in range(1, self.max_attempts))


async def execute_with_retry(
    operation: Callable[[int], Awaitable[Result[T, GatewayError]]],
    policy: RetryPolicy,
    name: str,
    *,
    sleep: Sleep = asyncio.sleep,
) -> Result[T, GatewayError]:
    """Run ``operation(attempt)`` until it succeeds, fails terminally, or attempts run out.

    Args:
        operation: Async callable taking the 1-based attempt number
        policy: Retry policy
        name: Label for log lines
        sleep: Awaitable sleep, injectable for tests

    Returns:
        Ok from the successful attempt, or the last Err with ``attempts`` set
    """
    attempt = 1
    while True:
        result = await operation(attempt)
        if result.is_ok():
            return result
        error = result.unwrap_err()
        if not error.retryable or attempt >= policy.max_attempts:
            return Err(error.model_copy(update={"attempts": attempt}))
        delay = policy.delay(attempt)
        log.info(
            "retrying",
            operation=name,
            attempt=attempt,
            max_attempts=policy.max_attempts,
            delay=round(delay, 3),
            code=str(error.code),
            status=error.status_code,
        )
        await sleep(delay)
        attempt += 1
