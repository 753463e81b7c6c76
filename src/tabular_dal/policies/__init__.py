"""Retry, backoff, idempotency and polling policies.

Policies are prototypes: the engine clones them for every logical call and
never mutates the instance it was given.
"""

from tabular_dal.policies.backoff import (
    BackoffPolicy,
    ExponentialBackoffPolicy,
    default_backoff_policy,
)
from tabular_dal.policies.idempotency import (
    AlwaysRetryMutationPolicy,
    IdempotentMutationPolicy,
    SafeIdempotentMutationPolicy,
    default_idempotent_mutation_policy,
)
from tabular_dal.policies.polling import (
    GenericPollingPolicy,
    PollingPolicy,
    default_polling_policy,
)
from tabular_dal.policies.retry import (
    LimitedErrorCountRetryPolicy,
    LimitedTimeRetryPolicy,
    RetryPolicy,
    default_retry_policy,
)

__all__ = [
    "AlwaysRetryMutationPolicy",
    "BackoffPolicy",
    "ExponentialBackoffPolicy",
    "GenericPollingPolicy",
    "IdempotentMutationPolicy",
    "LimitedErrorCountRetryPolicy",
    "LimitedTimeRetryPolicy",
    "PollingPolicy",
    "RetryPolicy",
    "SafeIdempotentMutationPolicy",
    "default_backoff_policy",
    "default_idempotent_mutation_policy",
    "default_polling_policy",
    "default_retry_policy",
]
