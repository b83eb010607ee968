"""Retry policies and execution.

Example:
    >>> from leadgate.runtime.retry import RetryPolicy, execute_with_retry
    >>> policy = RetryPolicy(max_attempts=3, initial_delay=0.5)
    >>> result = await execute_with_retry(attempt_once, policy, "GET /campaigns")
"""

from .backoff import Backoff, ExponentialBackoff
from .policy import RetryPolicy, execute_with_retry

__all__ = [
    "Backoff",
    "ExponentialBackoff",
    "RetryPolicy",
    "execute_with_retry",
]
