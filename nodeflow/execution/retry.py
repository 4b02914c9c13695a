"""Retry policy for node invocations.

The policy is a small state machine rather than a loop around ``sleep``:
``RetryPolicy.start()`` returns a ``RetryState`` that the engine feeds each
failure into; the returned ``RetryDecision`` says whether to try again and
how long to wait first.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field, replace

from nodeflow.config import RetryConfig
from nodeflow.domain.errors import ExecutionError, ResolutionError, TransientExecutionError

_TRANSIENT_MARKERS = ("timeout", "network", "econnreset", "fetch failed")


def is_retryable_error(error: BaseException) -> bool:
    """Default predicate: transient/network-class failures are retryable."""
    if isinstance(error, ResolutionError):
        return False
    if isinstance(error, ExecutionError):
        return error.retryable
    if isinstance(error, (TimeoutError, asyncio.TimeoutError, ConnectionError)):
        return True
    message = str(error).lower()
    return any(marker in message for marker in _TRANSIENT_MARKERS)


@dataclass(frozen=True)
class RetryDecision:
    retry: bool
    delay: float = 0.0


@dataclass
class RetryState:
    """Attempt bookkeeping for one node."""

    policy: RetryPolicy
    attempts: int = 0
    next_delay: float = field(init=False)

    def __post_init__(self) -> None:
        self.next_delay = self.policy.base_delay

    def begin_attempt(self) -> int:
        self.attempts += 1
        return self.attempts

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.policy.max_attempts

    def record_failure(self, error: BaseException) -> RetryDecision:
        if not self.policy.retryable(error) or self.exhausted:
            return RetryDecision(retry=False)
        delay = self.next_delay
        self.next_delay = min(self.next_delay * 2, self.policy.max_delay)
        return RetryDecision(retry=True, delay=delay)


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff: base delay, doubling, capped at max delay."""

    max_attempts: int = 4
    base_delay: float = 0.1
    max_delay: float = 5.0
    retryable: Callable[[BaseException], bool] = is_retryable_error

    @classmethod
    def from_config(
        cls,
        config: RetryConfig,
        retryable: Callable[[BaseException], bool] = is_retryable_error,
    ) -> RetryPolicy:
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay,
            max_delay=config.max_delay,
            retryable=retryable,
        )

    def start(self) -> RetryState:
        return RetryState(policy=self)

    def delays(self) -> list[float]:
        """The full backoff schedule when every attempt fails retryably."""
        state = replace(self, retryable=lambda error: True).start()
        schedule = []
        while True:
            state.begin_attempt()
            decision = state.record_failure(TransientExecutionError("timeout"))
            if not decision.retry:
                return schedule
            schedule.append(decision.delay)
