"""Backoff strategies for retry policies.

Attempt numbers are 1-based: ``delay(1)`` is the sleep after the first failed
attempt. Strategies are deterministic (no jitter) so retry schedules are
monotonic and reproducible in tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@runtime_checkable
class Backoff(Protocol):
    """Protocol for backoff delay calculation."""

    def delay(self, attempt: int) -> float:
        """Delay in seconds after failed attempt ``attempt`` (1-based)."""
        ...


@dataclass(frozen=True, slots=True)
class ExponentialBackoff:
    """Exponential backoff with a cap.

    Delay = min(initial * (factor ^ (attempt - 1)), max_delay)

    Attributes:
        initial: Delay after the first failure in seconds (default: 1.0)
        max_delay: Maximum delay cap in seconds (default: 10.0)
        factor: Exponential growth factor, >= 1 (default: 2.0)
    """

    initial: float = 1.0
    max_delay: float = 10.0
    factor: float = 2.0

    def delay(self, attempt: int) -> float:
        return min(self.initial * (self.factor ** max(attempt - 1, 0)), self.max_delay)
