"""Polling policies for long-running operations."""

from abc import ABC, abstractmethod
from typing import ClassVar, Self, override

from tabular_dal.errors import Status, StatusCode
from tabular_dal.policies.backoff import BackoffPolicy, ExponentialBackoffPolicy
from tabular_dal.policies.retry import LimitedTimeRetryPolicy, RetryPolicy

# Status recorded against the budget when a poll finds the operation still running.
_STILL_PENDING = Status(code=StatusCode.UNAVAILABLE, message="operation still pending")


class PollingPolicy(ABC):
    """Controls the cadence and total duration of operation polling."""

    @abstractmethod
    def clone(self) -> Self: ...

    @abstractmethod
    def wait_period(self) -> float:
        """Return the delay, in seconds, before the next poll."""

    @abstractmethod
    def on_pending(self) -> bool:
        """Record a poll that found the operation running; True to keep polling."""

    @abstractmethod
    def on_failure(self, status: Status) -> bool:
        """Record a failed poll and return True if polling may continue."""


class GenericPollingPolicy(PollingPolicy):
    """Combine a retry policy (the budget) with a backoff policy (the cadence).

    Each poll that finds the operation pending spends one unit of the retry
    budget, so `LimitedErrorCountRetryPolicy(n)` allows `n` polls. A failed
    poll is charged through `on_failure` instead. Once either call returns
    False, both keep returning False.
    """

    __slots__: ClassVar[tuple[str, ...]] = ("_backoff", "_exhausted", "_retry")

    def __init__(self, retry: RetryPolicy, backoff: BackoffPolicy) -> None:
        self._retry = retry.clone()
        self._backoff = backoff.clone()
        self._exhausted = False

    @override
    def clone(self) -> Self:
        return type(self)(self._retry, self._backoff)

    @override
    def wait_period(self) -> float:
        return self._backoff.on_completion()

    @override
    def on_pending(self) -> bool:
        return self.on_failure(_STILL_PENDING)

    @override
    def on_failure(self, status: Status) -> bool:
        if self._exhausted:
            return False
        if not self._retry.on_failure(status):
            self._exhausted = True
        return not self._exhausted


def default_polling_policy() -> PollingPolicy:
    """Poll for up to an hour, starting at 10ms and capped at one minute."""
    return GenericPollingPolicy(
        LimitedTimeRetryPolicy(maximum_duration=3600.0),
        ExponentialBackoffPolicy(initial_delay=0.01, maximum_delay=60.0),
    )
