"""Tests for operation polling policies."""

from tabular_dal.errors import Status, StatusCode
from tabular_dal.policies.backoff import ExponentialBackoffPolicy
from tabular_dal.policies.polling import GenericPollingPolicy, default_polling_policy
from tabular_dal.policies.retry import LimitedErrorCountRetryPolicy, LimitedTimeRetryPolicy


def make_policy(polls: int) -> GenericPollingPolicy:
    return GenericPollingPolicy(
        LimitedErrorCountRetryPolicy(polls),
        ExponentialBackoffPolicy(initial_delay=1.0, maximum_delay=4.0, jitter=0.0),
    )


def test_pending_polls_spend_the_budget() -> None:
    policy = make_policy(3)
    assert policy.on_pending()
    assert policy.on_pending()
    assert not policy.on_pending()
    assert not policy.on_failure(Status(code=StatusCode.UNAVAILABLE))


def test_wait_period_follows_backoff() -> None:
    policy = make_policy(5)
    assert [policy.wait_period() for _ in range(4)] == [1.0, 2.0, 4.0, 4.0]


def test_permanent_poll_failure_stops_polling() -> None:
    policy = make_policy(5)
    assert not policy.on_failure(Status(code=StatusCode.PERMISSION_DENIED))
    assert not policy.on_failure(Status(code=StatusCode.UNAVAILABLE))
    assert not policy.on_pending()


def test_transient_poll_failure_keeps_polling() -> None:
    policy = make_policy(5)
    assert policy.on_failure(Status(code=StatusCode.UNAVAILABLE))
    assert policy.on_pending()


def test_clone_is_independent() -> None:
    policy = make_policy(2)
    assert policy.on_pending()
    assert not policy.on_pending()
    clone = policy.clone()
    assert clone.on_pending()
    assert clone.wait_period() == 1.0


def test_prototype_is_not_mutated() -> None:
    retry = LimitedErrorCountRetryPolicy(1)
    policy = GenericPollingPolicy(retry, ExponentialBackoffPolicy(1.0, 2.0))
    policy.on_pending()
    assert retry.failures == 0


def test_default_polls_for_an_hour() -> None:
    policy = default_polling_policy()
    assert isinstance(policy, GenericPollingPolicy)
    assert isinstance(policy._retry, LimitedTimeRetryPolicy)
    assert policy._retry.maximum_duration == 3600.0
