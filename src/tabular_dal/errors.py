"""Error types for engine and transport operations."""

from enum import IntEnum, StrEnum
from typing import Self

from pydantic import BaseModel


class StatusCode(IntEnum):
    """Canonical RPC status codes."""

    OK = 0
    CANCELLED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16


TRANSIENT_CODES: frozenset[StatusCode] = frozenset(
    {StatusCode.UNAVAILABLE, StatusCode.DEADLINE_EXCEEDED, StatusCode.ABORTED}
)


def is_transient(code: StatusCode) -> bool:
    """Return True if a failure with this code may succeed when retried."""
    return code in TRANSIENT_CODES


class Status(BaseModel, frozen=True):
    """Structured outcome of an RPC or of a finished operation."""

    code: StatusCode = StatusCode.OK
    """Canonical status code."""

    message: str = ""
    """Human readable detail supplied by the server."""

    @property
    def ok(self) -> bool:
        return self.code == StatusCode.OK

    def __str__(self) -> str:
        return f"{self.code.name}: {self.message}" if self.message else self.code.name


class ErrorKind(StrEnum):
    """Classification of engine errors."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    OPERATION = "operation"
    CONFIGURATION = "configuration"


class DalError(Exception):
    """Base error for all engine operations."""

    __slots__ = ("kind", "message", "source", "status")

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.PERMANENT,
        source: BaseException | None = None,
        status: Status | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.source = source
        self.status = status if status is not None else Status(code=StatusCode.UNKNOWN)

    @property
    def code(self) -> StatusCode:
        return self.status.code

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, kind={self.kind!r}, code={self.code.name})"


class RpcError(DalError):
    """A transport call failed with a structured status.

    The kind is derived from the status code, so retry decisions can be made
    from the error alone.
    """

    def __init__(
        self,
        status: Status,
        operation: str = "",
        source: BaseException | None = None,
    ) -> None:
        kind = ErrorKind.TRANSIENT if is_transient(status.code) else ErrorKind.PERMANENT
        prefix = f"{operation}: " if operation else ""
        super().__init__(f"{prefix}{status}", kind=kind, source=source, status=status)
        self.operation = operation

    @classmethod
    def of(cls, code: StatusCode, message: str = "", operation: str = "") -> Self:
        """Build an error from a bare code and message."""
        return cls(Status(code=code, message=message), operation=operation)

    @property
    def transient(self) -> bool:
        return self.kind is ErrorKind.TRANSIENT


class OperationError(DalError):
    """A long-running operation finished with a server-reported error.

    This is the server's final answer for the operation and is never retried.
    """

    def __init__(self, status: Status, operation_name: str) -> None:
        super().__init__(
            f"operation {operation_name} failed: {status}",
            kind=ErrorKind.OPERATION,
            status=status,
        )
        self.operation_name = operation_name


class PollingExhaustedError(DalError):
    """The polling budget ran out before the operation completed."""

    def __init__(self, operation_name: str, polls: int) -> None:
        super().__init__(
            f"operation {operation_name} still pending after {polls} polls",
            kind=ErrorKind.TRANSIENT,
            status=Status(
                code=StatusCode.DEADLINE_EXCEEDED,
                message="polling policy exhausted",
            ),
        )
        self.operation_name = operation_name
        self.polls = polls
