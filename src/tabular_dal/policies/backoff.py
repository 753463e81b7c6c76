"""Backoff policies: how long to wait before the next attempt."""

import math
import random
from abc import ABC, abstractmethod
from typing import ClassVar, Self, override


class BackoffPolicy(ABC):
    """Computes delays between attempts of a single call."""

    @abstractmethod
    def clone(self) -> Self:
        """Return a copy with the attempt counter reset."""

    @abstractmethod
    def on_completion(self) -> float:
        """Return the delay, in seconds, before the next attempt."""


class ExponentialBackoffPolicy(BackoffPolicy):
    """Exponential growth with jitter, capped at `maximum_delay`.

    The k-th delay (k >= 1) lies in `[nominal * (1 - jitter), nominal]` where
    `nominal = min(initial_delay * multiplier ** (k - 1), maximum_delay)`.
    Successive delays from one instance never decrease.
    """

    __slots__: ClassVar[tuple[str, ...]] = (
        "_attempt",
        "_last_delay",
        "_rng",
        "_shared_rng",
        "initial_delay",
        "jitter",
        "maximum_delay",
        "multiplier",
    )

    def __init__(
        self,
        initial_delay: float,
        maximum_delay: float,
        multiplier: float = 2.0,
        jitter: float = 0.5,
        rng: random.Random | None = None,
    ) -> None:
        if initial_delay <= 0:
            msg = f"initial_delay must be positive, got {initial_delay}"
            raise ValueError(msg)
        if maximum_delay < initial_delay:
            msg = f"maximum_delay ({maximum_delay}) is smaller than initial_delay ({initial_delay})"
            raise ValueError(msg)
        if multiplier < 1.0:
            msg = f"multiplier must be at least 1.0, got {multiplier}"
            raise ValueError(msg)
        if not 0.0 <= jitter < 1.0:
            msg = f"jitter must be in [0, 1), got {jitter}"
            raise ValueError(msg)
        self.initial_delay = initial_delay
        self.maximum_delay = maximum_delay
        self.multiplier = multiplier
        self.jitter = jitter
        # An explicitly supplied generator is shared by clones; otherwise each
        # instance draws from its own.
        self._shared_rng = rng
        self._rng = rng if rng is not None else random.Random()
        self._attempt = 0
        self._last_delay = 0.0

    @override
    def clone(self) -> Self:
        return type(self)(
            self.initial_delay,
            self.maximum_delay,
            self.multiplier,
            self.jitter,
            self._shared_rng,
        )

    def nominal_delay(self, attempt: int) -> float:
        """Delay before jitter for the given 1-based attempt."""
        if attempt < 1:
            msg = f"attempt numbers start at 1, got {attempt}"
            raise ValueError(msg)
        # Compare in log space so large attempt counts cannot overflow.
        growth = (attempt - 1) * math.log(self.multiplier)
        if growth >= math.log(self.maximum_delay / self.initial_delay):
            return self.maximum_delay
        return min(self.initial_delay * self.multiplier ** (attempt - 1), self.maximum_delay)

    def delay_for_attempt(self, attempt: int) -> float:
        """Draw a jittered delay for the given 1-based attempt."""
        nominal = self.nominal_delay(attempt)
        return self._rng.uniform(nominal * (1.0 - self.jitter), nominal)

    @override
    def on_completion(self) -> float:
        self._attempt += 1
        delay = max(self.delay_for_attempt(self._attempt), self._last_delay)
        self._last_delay = delay
        return delay

    @property
    def attempt(self) -> int:
        return self._attempt

    def __repr__(self) -> str:
        return (
            f"ExponentialBackoffPolicy(initial_delay={self.initial_delay}, "
            f"maximum_delay={self.maximum_delay}, multiplier={self.multiplier}, "
            f"jitter={self.jitter})"
        )


def default_backoff_policy() -> BackoffPolicy:
    """Start at 10ms and grow to at most five minutes."""
    return ExponentialBackoffPolicy(initial_delay=0.01, maximum_delay=300.0)
