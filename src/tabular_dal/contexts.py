"""Context types for engine calls.

A `CallContext` lives for exactly one logical call, including every page of a
listing. It owns the cloned policies for that call and is never shared.
"""

import time
from collections.abc import Callable
from enum import StrEnum
from typing import ClassVar

from pydantic import BaseModel

from tabular_dal.policies.backoff import BackoffPolicy
from tabular_dal.policies.retry import RetryPolicy
from tabular_dal.protocols import Metadata

REQUEST_PARAMS_HEADER = "x-goog-request-params"


class MetadataParamType(StrEnum):
    """Name of the request field that identifies the target resource."""

    PARENT = "parent"
    NAME = "name"
    INSTANCE_NAME = "instance.name"
    TABLE_NAME = "table_name"


class MetadataUpdatePolicy(BaseModel, frozen=True):
    """Routing metadata attached to every attempt of a call.

    The service uses the header to route the request to the right backend
    without parsing the request body.
    """

    resource_name: str
    """Full name of the resource the call targets."""

    param_type: MetadataParamType = MetadataParamType.PARENT
    """Request field holding `resource_name`."""

    @property
    def value(self) -> str:
        return f"{self.param_type.value}={self.resource_name}"

    def metadata(self) -> Metadata:
        return ((REQUEST_PARAMS_HEADER, self.value),)


class CallContext:
    """Per-call state: cloned policies, routing metadata and timing."""

    __slots__: ClassVar[tuple[str, ...]] = (
        "_clock",
        "_started",
        "attempts",
        "backoff",
        "metadata",
        "operation",
        "retry",
    )

    def __init__(
        self,
        operation: str,
        retry: RetryPolicy,
        backoff: BackoffPolicy,
        metadata: Metadata = (),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.operation = operation
        self.retry = retry
        self.backoff = backoff
        self.metadata = metadata
        self.attempts = 0
        self._clock = clock
        self._started = clock()

    @property
    def elapsed(self) -> float:
        """Seconds since the call started."""
        return self._clock() - self._started

    def __repr__(self) -> str:
        return (
            f"CallContext(operation={self.operation!r}, attempts={self.attempts}, "
            f"elapsed={self.elapsed:.3f})"
        )
