"""Tests for multi-page listings."""

from collections.abc import Callable

import pytest
from conftest import ScriptedCall, rpc_error

from tabular_dal.datatypes import Page
from tabular_dal.engine.executor import CallExecutor
from tabular_dal.engine.paginator import Paginator
from tabular_dal.errors import RpcError, StatusCode
from tabular_dal.messages import ListInstancesRequest

Factory = Callable[..., CallExecutor]


def listing(executor: CallExecutor, rpc: ScriptedCall) -> Paginator[ListInstancesRequest, Page[str], str]:
    return Paginator(
        executor,
        rpc,
        lambda token: ListInstancesRequest(parent="projects/p", page_token=token),
        operation="ListThings",
    )


@pytest.mark.asyncio
async def test_follows_page_tokens(make_executor: Factory) -> None:
    rpc = ScriptedCall(
        Page[str](items=["A", "B"], next_page_token="p1"),
        Page[str](items=["C", "D"]),
    )
    paginator = listing(make_executor(), rpc)
    assert await paginator.collect() == ["A", "B", "C", "D"]
    assert rpc.calls == 2
    assert [r.page_token for r in rpc.requests] == ["", "p1"]
    assert paginator.pages == 2


@pytest.mark.asyncio
async def test_empty_pages_with_tokens_are_followed(make_executor: Factory) -> None:
    rpc = ScriptedCall(
        Page[str](items=[], next_page_token="p1"),
        Page[str](items=["A"]),
    )
    assert await listing(make_executor(), rpc).collect() == ["A"]


@pytest.mark.asyncio
async def test_is_lazy(make_executor: Factory) -> None:
    rpc = ScriptedCall(
        Page[str](items=["A", "B"], next_page_token="p1"),
        Page[str](items=["C"]),
    )
    iterator = aiter(listing(make_executor(), rpc))
    assert rpc.calls == 0
    assert await anext(iterator) == "A"
    assert await anext(iterator) == "B"
    assert rpc.calls == 1


@pytest.mark.asyncio
async def test_can_only_be_iterated_once(make_executor: Factory) -> None:
    paginator = listing(make_executor(), ScriptedCall(Page[str](items=["A"])))
    assert await paginator.collect() == ["A"]
    with pytest.raises(RuntimeError, match="only be iterated once"):
        aiter(paginator)


@pytest.mark.asyncio
async def test_recoverable_failures_retry_the_same_page(make_executor: Factory) -> None:
    rpc = ScriptedCall(
        Page[str](items=["A"], next_page_token="p1"),
        rpc_error(StatusCode.UNAVAILABLE),
        Page[str](items=["B"]),
    )
    assert await listing(make_executor(3), rpc).collect() == ["A", "B"]
    assert [r.page_token for r in rpc.requests] == ["", "p1", "p1"]


@pytest.mark.asyncio
async def test_retry_budget_spans_all_pages(make_executor: Factory) -> None:
    rpc = ScriptedCall(
        rpc_error(StatusCode.UNAVAILABLE),
        Page[str](items=["A"], next_page_token="p1"),
        rpc_error(StatusCode.UNAVAILABLE),
        Page[str](items=["B"]),
    )
    with pytest.raises(RpcError):
        await listing(make_executor(2), rpc).collect()
    assert rpc.calls == 3


@pytest.mark.asyncio
async def test_failure_stops_iteration_after_yielded_items(make_executor: Factory) -> None:
    rpc = ScriptedCall(
        Page[str](items=["A", "B"], next_page_token="p1"),
        rpc_error(StatusCode.PERMISSION_DENIED),
    )
    seen: list[str] = []
    with pytest.raises(RpcError) as excinfo:
        async for item in listing(make_executor(), rpc):
            seen.append(item)
    assert seen == ["A", "B"]
    assert excinfo.value.code == StatusCode.PERMISSION_DENIED
