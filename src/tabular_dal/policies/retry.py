"""Retry policies: how many failures a single call may absorb.

A policy object is a prototype. Each logical call works on its own `clone()`,
so concurrent calls never share failure counters.
"""

import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import ClassVar, Self, override

from tabular_dal.errors import RpcError, Status, is_transient

type Clock = Callable[[], float]


class RetryPolicy(ABC):
    """Decides whether another attempt is allowed after a failure."""

    @abstractmethod
    def clone(self) -> Self:
        """Return a fresh, unexhausted copy of this policy."""

    @abstractmethod
    def on_failure(self, status: Status) -> bool:
        """Record a failure and return True if the call may be retried.

        Once this returns False because the budget is spent, it keeps
        returning False for the lifetime of the instance.
        """

    @staticmethod
    def is_permanent_failure(status: Status) -> bool:
        return not is_transient(status.code)

    def can_retry(self, error: BaseException) -> bool:
        """Record `error` and decide whether to try again."""
        if not isinstance(error, RpcError):
            return False
        return self.on_failure(error.status)


class LimitedErrorCountRetryPolicy(RetryPolicy):
    """Allow up to `maximum_attempts` attempts in total."""

    __slots__: ClassVar[tuple[str, ...]] = ("_exhausted", "_failures", "maximum_attempts")

    def __init__(self, maximum_attempts: int) -> None:
        if maximum_attempts < 1:
            msg = f"maximum_attempts must be at least 1, got {maximum_attempts}"
            raise ValueError(msg)
        self.maximum_attempts = maximum_attempts
        self._failures = 0
        self._exhausted = False

    @override
    def clone(self) -> Self:
        return type(self)(self.maximum_attempts)

    @override
    def on_failure(self, status: Status) -> bool:
        if self.is_permanent_failure(status):
            return False
        self._failures += 1
        if self._failures >= self.maximum_attempts:
            self._exhausted = True
        return not self._exhausted

    @property
    def failures(self) -> int:
        return self._failures

    def __repr__(self) -> str:
        return f"LimitedErrorCountRetryPolicy(maximum_attempts={self.maximum_attempts})"


class LimitedTimeRetryPolicy(RetryPolicy):
    """Retry transient failures until `maximum_duration` seconds have passed.

    The deadline starts when the instance is created, which for per-call
    clones is the start of the call.
    """

    __slots__: ClassVar[tuple[str, ...]] = ("_clock", "_deadline", "_exhausted", "maximum_duration")

    def __init__(self, maximum_duration: float, clock: Clock = time.monotonic) -> None:
        if maximum_duration <= 0:
            msg = f"maximum_duration must be positive, got {maximum_duration}"
            raise ValueError(msg)
        self.maximum_duration = maximum_duration
        self._clock = clock
        self._deadline = clock() + maximum_duration
        self._exhausted = False

    @override
    def clone(self) -> Self:
        return type(self)(self.maximum_duration, self._clock)

    @override
    def on_failure(self, status: Status) -> bool:
        if self.is_permanent_failure(status):
            return False
        if self._clock() >= self._deadline:
            self._exhausted = True
        return not self._exhausted

    @property
    def remaining(self) -> float:
        return max(0.0, self._deadline - self._clock())

    def __repr__(self) -> str:
        return f"LimitedTimeRetryPolicy(maximum_duration={self.maximum_duration})"


def default_retry_policy() -> RetryPolicy:
    """Retry transient failures for up to ten minutes."""
    return LimitedTimeRetryPolicy(maximum_duration=600.0)

