"""Batch mutation with per-entry retry.

A bulk request can partially succeed: the service reports a status for each
entry. `BulkMutator` keeps track of which entries still need to be sent,
resubmitting only the idempotent ones that failed transiently, and collects
the rest as `FailedMutation` values tagged with their original index.
"""

import logging
from dataclasses import dataclass
from typing import ClassVar

from tabular_dal.contexts import MetadataUpdatePolicy
from tabular_dal.datatypes import BulkMutation, FailedMutation, SingleRowMutation
from tabular_dal.engine.executor import CallExecutor
from tabular_dal.errors import RpcError, Status, StatusCode, is_transient
from tabular_dal.messages import MutateRowsRequest, MutateRowsResponse
from tabular_dal.policies.idempotency import IdempotentMutationPolicy
from tabular_dal.protocols import UnaryCall

logger = logging.getLogger(__name__)

MUTATE_ROWS = "MutateRows"

_MISSING_STATUS = Status(
    code=StatusCode.UNAVAILABLE,
    message="no status received for this entry",
)


@dataclass(slots=True)
class _Entry:
    index: int
    mutation: SingleRowMutation
    idempotent: bool
    status: Status


class BulkMutator:
    """Per-entry bookkeeping for one bulk apply call."""

    __slots__: ClassVar[tuple[str, ...]] = (
        "_app_profile_id",
        "_failures",
        "_pending",
        "_table_name",
        "rounds",
    )

    def __init__(
        self,
        table_name: str,
        app_profile_id: str,
        policy: IdempotentMutationPolicy,
        bulk: BulkMutation,
    ) -> None:
        self._table_name = table_name
        self._app_profile_id = app_profile_id
        self._pending = [
            _Entry(
                index=i,
                mutation=row,
                idempotent=policy.is_row_idempotent(row),
                status=Status(),
            )
            for i, row in enumerate(bulk.entries)
        ]
        self._failures: list[FailedMutation] = []
        self.rounds = 0

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    @property
    def pending_indices(self) -> list[int]:
        return [e.index for e in self._pending]

    def last_status(self) -> Status:
        """Status of the first entry still waiting to be resent."""
        return self._pending[0].status if self._pending else Status()

    def make_request(self) -> MutateRowsRequest:
        self.rounds += 1
        return MutateRowsRequest(
            table_name=self._table_name,
            app_profile_id=self._app_profile_id,
            entries=[e.mutation for e in self._pending],
        )

    def on_response(self, response: MutateRowsResponse) -> None:
        """Sort the in-flight entries by the per-entry statuses received."""
        in_flight, self._pending = self._pending, []
        seen: set[int] = set()
        for result in response.entries:
            if not 0 <= result.index < len(in_flight) or result.index in seen:
                logger.warning("ignoring unexpected entry index %d in response", result.index)
                continue
            seen.add(result.index)
            if not result.status.ok:
                self._record(in_flight[result.index], result.status)
        for position, entry in enumerate(in_flight):
            if position not in seen:
                self._record(entry, _MISSING_STATUS)
        self._pending.sort(key=lambda e: e.index)

    def on_rpc_failure(self, status: Status) -> None:
        """The whole request failed: every in-flight entry saw `status`."""
        in_flight, self._pending = self._pending, []
        for entry in in_flight:
            self._record(entry, status)

    def finish(self) -> list[FailedMutation]:
        """Give up on anything still pending and return all failures."""
        for entry in self._pending:
            self._fail(entry)
        self._pending = []
        return sorted(self._failures, key=lambda f: f.index)

    def _record(self, entry: _Entry, status: Status) -> None:
        entry.status = status
        if entry.idempotent and is_transient(status.code):
            self._pending.append(entry)
        else:
            self._fail(entry)

    def _fail(self, entry: _Entry) -> None:
        self._failures.append(
            FailedMutation(index=entry.index, status=entry.status, mutation=entry.mutation)
        )


async def apply_bulk(
    executor: CallExecutor,
    rpc: UnaryCall[MutateRowsRequest, MutateRowsResponse],
    mutator: BulkMutator,
    *,
    operation: str = MUTATE_ROWS,
    metadata_policy: MetadataUpdatePolicy | None = None,
) -> list[FailedMutation]:
    """Send the batch until every entry succeeded or failed for good.

    Each round that leaves retryable entries spends one unit of the shared
    retry budget and waits for the shared backoff. Partial failure is
    reported through the returned list, never raised.
    """
    ctx = executor.new_context(operation, metadata_policy)
    while mutator.has_pending:
        request = mutator.make_request()
        ctx.attempts += 1
        try:
            response = await rpc(request, ctx.metadata)
        except RpcError as exc:
            logger.debug("%s: round %d failed with %s", operation, mutator.rounds, exc.status)
            mutator.on_rpc_failure(exc.status)
        else:
            mutator.on_response(response)
        if not mutator.has_pending:
            break
        if not ctx.retry.on_failure(mutator.last_status()):
            logger.warning(
                "%s: retry budget exhausted with %d entries pending",
                operation,
                len(mutator.pending_indices),
            )
            break
        delay = ctx.backoff.on_completion()
        logger.debug(
            "%s: resending entries %s in %.3fs",
            operation,
            mutator.pending_indices,
            delay,
        )
        await executor.sleep(delay)
    return mutator.finish()
