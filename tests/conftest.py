"""Pytest fixtures and scripted fakes for transports."""

from collections.abc import Callable
from typing import Any

import pytest

from tabular_dal.engine.executor import CallExecutor
from tabular_dal.errors import RpcError, StatusCode
from tabular_dal.policies.backoff import ExponentialBackoffPolicy
from tabular_dal.policies.retry import LimitedErrorCountRetryPolicy


def rpc_error(code: StatusCode, message: str = "") -> RpcError:
    return RpcError.of(code, message or code.name.lower())


class ScriptedCall:
    """A unary call that plays back a fixed list of outcomes.

    Each outcome is either a response or an exception to raise. Every
    invocation is recorded with its request and metadata.
    """

    def __init__(self, *outcomes: Any) -> None:
        self.outcomes = list(outcomes)
        self.requests: list[Any] = []
        self.metadata: list[tuple[tuple[str, str], ...]] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def push(self, *outcomes: Any) -> None:
        self.outcomes.extend(outcomes)

    async def __call__(self, request: Any, metadata: Any) -> Any:
        self.requests.append(request)
        self.metadata.append(tuple(metadata))
        if not self.outcomes:
            msg = f"unexpected call #{len(self.requests)} with {request!r}"
            raise AssertionError(msg)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class RecordingSleep:
    """Stands in for `asyncio.sleep`, recording the requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeAdminTransport:
    def __init__(self) -> None:
        self.list_instances = ScriptedCall()
        self.get_instance = ScriptedCall()
        self.create_instance = ScriptedCall()
        self.update_instance = ScriptedCall()
        self.delete_instance = ScriptedCall()
        self.list_clusters = ScriptedCall()
        self.get_cluster = ScriptedCall()
        self.create_cluster = ScriptedCall()
        self.update_cluster = ScriptedCall()
        self.delete_cluster = ScriptedCall()
        self.get_operation = ScriptedCall()


class FakeDataTransport:
    def __init__(self) -> None:
        self.mutate_row = ScriptedCall()
        self.mutate_rows = ScriptedCall()
        self.check_and_mutate_row = ScriptedCall()
        self.read_modify_write_row = ScriptedCall()
        self.sample_row_keys = ScriptedCall()
        self.read_row = ScriptedCall()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_executor(sleep: RecordingSleep) -> Callable[..., CallExecutor]:
    """Build an executor with a fixed attempt budget and no real waiting."""

    def factory(maximum_attempts: int = 3, **kwargs: Any) -> CallExecutor:
        return CallExecutor(
            LimitedErrorCountRetryPolicy(maximum_attempts),
            ExponentialBackoffPolicy(initial_delay=0.1, maximum_delay=1.0),
            sleep=sleep,
            **kwargs,
        )

    return factory


@pytest.fixture
def admin_transport() -> FakeAdminTransport:
    return FakeAdminTransport()


@pytest.fixture
def data_transport() -> FakeDataTransport:
    return FakeDataTransport()
