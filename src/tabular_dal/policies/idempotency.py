"""Idempotency policies for row mutations.

Only mutations are classified here. Whole call types are idempotent or not by
construction: reads are always safe to repeat, while deletes,
check-and-mutate and read-modify-write are never retried.
"""

from abc import ABC, abstractmethod
from typing import Self, override

from tabular_dal.datatypes import SERVER_SET_TIMESTAMP, Mutation, SetCell, SingleRowMutation


class IdempotentMutationPolicy(ABC):
    """Classifies mutations as safe or unsafe to send more than once."""

    @abstractmethod
    def clone(self) -> Self: ...

    @abstractmethod
    def is_idempotent(self, mutation: Mutation) -> bool:
        """Return True if applying `mutation` twice equals applying it once."""

    def is_row_idempotent(self, row: SingleRowMutation) -> bool:
        """A row mutation is idempotent when every part of it is."""
        return all(self.is_idempotent(m) for m in row.mutations)


class SafeIdempotentMutationPolicy(IdempotentMutationPolicy):
    """Retry only mutations whose effect is pinned to an exact value.

    A `SetCell` that lets the server assign the timestamp writes a new cell
    version on every attempt, so it is not idempotent. Every other mutation
    is.
    """

    @override
    def clone(self) -> Self:
        return type(self)()

    @override
    def is_idempotent(self, mutation: Mutation) -> bool:
        if isinstance(mutation, SetCell):
            return mutation.timestamp_micros != SERVER_SET_TIMESTAMP
        return True


class AlwaysRetryMutationPolicy(IdempotentMutationPolicy):
    """Treat every mutation as idempotent.

    For applications that accept duplicate cell versions in exchange for
    retrying server-timestamped writes.
    """

    @override
    def clone(self) -> Self:
        return type(self)()

    @override
    def is_idempotent(self, mutation: Mutation) -> bool:
        return True


def default_idempotent_mutation_policy() -> IdempotentMutationPolicy:
    return SafeIdempotentMutationPolicy()
