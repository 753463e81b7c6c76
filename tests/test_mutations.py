"""Tests for batch mutation with per-entry retry."""

from collections.abc import Callable

import pytest
from conftest import RecordingSleep, ScriptedCall, rpc_error

from tabular_dal.datatypes import BulkMutation, SetCell, SingleRowMutation
from tabular_dal.engine.executor import CallExecutor
from tabular_dal.engine.mutations import BulkMutator, apply_bulk
from tabular_dal.errors import Status, StatusCode
from tabular_dal.messages import MutateRowsEntry, MutateRowsResponse
from tabular_dal.policies.idempotency import (
    AlwaysRetryMutationPolicy,
    SafeIdempotentMutationPolicy,
)

Factory = Callable[..., CallExecutor]

TABLE = "projects/p/instances/i/tables/t"
OK = Status()
UNAVAILABLE = Status(code=StatusCode.UNAVAILABLE, message="try again")
INVALID = Status(code=StatusCode.INVALID_ARGUMENT, message="bad family")


def row(key: str, *, timestamp: int = 1_000) -> SingleRowMutation:
    return SingleRowMutation(
        row_key=key.encode(),
        mutations=[
            SetCell(
                family_name="cf",
                column_qualifier=b"c",
                timestamp_micros=timestamp,
                value=b"v",
            )
        ],
    )


def response(*statuses: Status) -> MutateRowsResponse:
    return MutateRowsResponse(
        entries=[MutateRowsEntry(index=i, status=s) for i, s in enumerate(statuses)]
    )


def mutator(*rows: SingleRowMutation, always_retry: bool = False) -> BulkMutator:
    policy = AlwaysRetryMutationPolicy() if always_retry else SafeIdempotentMutationPolicy()
    return BulkMutator(TABLE, "", policy, BulkMutation(entries=list(rows)))


@pytest.mark.asyncio
async def test_resends_only_transient_failures(
    make_executor: Factory,
    sleep: RecordingSleep,
) -> None:
    rpc = ScriptedCall(
        response(OK, UNAVAILABLE, OK, UNAVAILABLE),
        response(OK, OK),
    )
    bulk = mutator(row("r1"), row("r2"), row("r3"), row("r4"))
    failures = await apply_bulk(make_executor(5), rpc, bulk)
    assert failures == []
    assert bulk.rounds == 2
    assert [e.row_key for e in rpc.requests[1].entries] == [b"r2", b"r4"]
    assert len(sleep.delays) == 1


@pytest.mark.asyncio
async def test_failures_carry_original_indices(make_executor: Factory) -> None:
    rpc = ScriptedCall(
        response(OK, UNAVAILABLE, OK, UNAVAILABLE),
        response(INVALID, OK),
    )
    rows = [row("r1"), row("r2"), row("r3"), row("r4")]
    failures = await apply_bulk(make_executor(5), rpc, mutator(*rows))
    assert [(f.index, f.status.code) for f in failures] == [(1, StatusCode.INVALID_ARGUMENT)]
    assert failures[0].mutation == rows[1]


@pytest.mark.asyncio
async def test_permanent_entry_failure_is_not_resent(make_executor: Factory) -> None:
    rpc = ScriptedCall(response(INVALID, OK))
    failures = await apply_bulk(make_executor(5), rpc, mutator(row("r1"), row("r2")))
    assert rpc.calls == 1
    assert [f.index for f in failures] == [0]
    assert failures[0].status == INVALID


@pytest.mark.asyncio
async def test_non_idempotent_entries_fail_without_resend(make_executor: Factory) -> None:
    rpc = ScriptedCall(response(UNAVAILABLE, UNAVAILABLE), response(OK))
    bulk = mutator(row("server-time", timestamp=-1), row("pinned"))
    failures = await apply_bulk(make_executor(5), rpc, bulk)
    assert [(f.index, f.status.code) for f in failures] == [(0, StatusCode.UNAVAILABLE)]
    assert [e.row_key for e in rpc.requests[1].entries] == [b"pinned"]


@pytest.mark.asyncio
async def test_always_retry_resends_server_timestamps(make_executor: Factory) -> None:
    rpc = ScriptedCall(response(UNAVAILABLE), response(OK))
    bulk = mutator(row("server-time", timestamp=-1), always_retry=True)
    assert await apply_bulk(make_executor(5), rpc, bulk) == []
    assert rpc.calls == 2


@pytest.mark.asyncio
async def test_budget_exhaustion_reports_pending_entries(make_executor: Factory) -> None:
    rpc = ScriptedCall(
        response(OK, UNAVAILABLE, UNAVAILABLE),
        response(OK, UNAVAILABLE),
    )
    failures = await apply_bulk(make_executor(2), rpc, mutator(row("a"), row("b"), row("c")))
    assert rpc.calls == 2
    assert [(f.index, f.status.code) for f in failures] == [(2, StatusCode.UNAVAILABLE)]


@pytest.mark.asyncio
async def test_missing_entries_are_treated_as_unavailable(make_executor: Factory) -> None:
    partial = MutateRowsResponse(entries=[MutateRowsEntry(index=0, status=OK)])
    rpc = ScriptedCall(partial, response(OK))
    failures = await apply_bulk(make_executor(3), rpc, mutator(row("a"), row("b")))
    assert failures == []
    assert [e.row_key for e in rpc.requests[1].entries] == [b"b"]


@pytest.mark.asyncio
async def test_unexpected_indices_are_ignored(make_executor: Factory) -> None:
    odd = MutateRowsResponse(
        entries=[
            MutateRowsEntry(index=0, status=OK),
            MutateRowsEntry(index=0, status=INVALID),
            MutateRowsEntry(index=7, status=INVALID),
        ]
    )
    assert await apply_bulk(make_executor(3), ScriptedCall(odd), mutator(row("a"))) == []


@pytest.mark.asyncio
async def test_whole_request_failure_applies_to_every_entry(make_executor: Factory) -> None:
    rpc = ScriptedCall(rpc_error(StatusCode.UNAVAILABLE), response(OK, OK))
    assert await apply_bulk(make_executor(3), rpc, mutator(row("a"), row("b"))) == []
    assert rpc.calls == 2
    assert rpc.requests[0] == rpc.requests[1]


@pytest.mark.asyncio
async def test_whole_request_permanent_failure(make_executor: Factory) -> None:
    rpc = ScriptedCall(rpc_error(StatusCode.PERMISSION_DENIED, "denied"))
    failures = await apply_bulk(make_executor(3), rpc, mutator(row("a"), row("b")))
    assert [(f.index, f.status.code) for f in failures] == [
        (0, StatusCode.PERMISSION_DENIED),
        (1, StatusCode.PERMISSION_DENIED),
    ]


@pytest.mark.asyncio
async def test_empty_batch_sends_nothing(make_executor: Factory) -> None:
    rpc = ScriptedCall()
    assert await apply_bulk(make_executor(), rpc, mutator()) == []
    assert rpc.calls == 0
