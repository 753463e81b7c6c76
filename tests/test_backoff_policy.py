"""Tests for exponential backoff."""

import random

import pytest
from hypothesis import given
from hypothesis import strategies as st

from tabular_dal.policies.backoff import ExponentialBackoffPolicy, default_backoff_policy


def test_nominal_delay_doubles_then_caps() -> None:
    policy = ExponentialBackoffPolicy(initial_delay=0.1, maximum_delay=1.0)
    assert [policy.nominal_delay(k) for k in range(1, 7)] == pytest.approx(
        [0.1, 0.2, 0.4, 0.8, 1.0, 1.0]
    )


def test_nominal_delay_does_not_overflow() -> None:
    policy = ExponentialBackoffPolicy(initial_delay=0.01, maximum_delay=300.0)
    assert policy.nominal_delay(100_000) == 300.0


def test_without_jitter_delays_are_exact() -> None:
    policy = ExponentialBackoffPolicy(initial_delay=1.0, maximum_delay=4.0, jitter=0.0)
    assert [policy.on_completion() for _ in range(4)] == [1.0, 2.0, 4.0, 4.0]
    assert policy.attempt == 4


def test_clone_resets_attempts() -> None:
    policy = ExponentialBackoffPolicy(initial_delay=1.0, maximum_delay=8.0, jitter=0.0)
    policy.on_completion()
    policy.on_completion()
    clone = policy.clone()
    assert clone.attempt == 0
    assert clone.on_completion() == 1.0


def test_shared_rng_makes_delays_reproducible() -> None:
    first = ExponentialBackoffPolicy(0.1, 10.0, rng=random.Random(7))
    second = ExponentialBackoffPolicy(0.1, 10.0, rng=random.Random(7))
    assert [first.on_completion() for _ in range(5)] == [
        second.on_completion() for _ in range(5)
    ]


@pytest.mark.parametrize(
    ("kwargs", "match"),
    [
        ({"initial_delay": 0, "maximum_delay": 1}, "initial_delay"),
        ({"initial_delay": 2, "maximum_delay": 1}, "smaller"),
        ({"initial_delay": 1, "maximum_delay": 2, "multiplier": 0.5}, "multiplier"),
        ({"initial_delay": 1, "maximum_delay": 2, "jitter": 1.0}, "jitter"),
    ],
)
def test_rejects_invalid_arguments(kwargs: dict[str, float], match: str) -> None:
    with pytest.raises(ValueError, match=match):
        ExponentialBackoffPolicy(**kwargs)


def test_default_bounds() -> None:
    policy = default_backoff_policy()
    assert isinstance(policy, ExponentialBackoffPolicy)
    assert policy.initial_delay == 0.01
    assert policy.maximum_delay == 300.0


@given(
    initial=st.floats(min_value=0.001, max_value=1.0),
    ratio=st.floats(min_value=1.0, max_value=1000.0),
    multiplier=st.floats(min_value=1.0, max_value=4.0),
    jitter=st.floats(min_value=0.0, max_value=0.99),
    seed=st.integers(min_value=0, max_value=2**32 - 1),
    attempts=st.integers(min_value=1, max_value=40),
)
def test_each_delay_lies_in_its_jitter_window(
    initial: float,
    ratio: float,
    multiplier: float,
    jitter: float,
    seed: int,
    attempts: int,
) -> None:
    maximum = initial * ratio
    policy = ExponentialBackoffPolicy(
        initial_delay=initial,
        maximum_delay=maximum,
        multiplier=multiplier,
        jitter=jitter,
        rng=random.Random(seed),
    )
    tolerance = 1e-9
    previous = 0.0
    for k in range(1, attempts + 1):
        nominal = min(initial * multiplier ** (k - 1), maximum)
        assert policy.nominal_delay(k) == pytest.approx(nominal, rel=tolerance)
        delay = policy.on_completion()
        assert delay >= nominal * (1.0 - jitter) * (1 - tolerance)
        assert delay <= nominal * (1 + tolerance)
        assert delay >= previous
        previous = delay
