"""Data types for the engine.

These types represent the values that flow between the engine and a transport:
- `Page` for one page of a listing
- `Operation` and its `Pending` / `Done` / `Failed` states for long-running work
- `Instance`, `Cluster` for administrative resources
- `SetCell`, `DeleteFromColumn`, `DeleteFromFamily`, `DeleteFromRow` for row mutations
- `FailedMutation` for batch entries that did not succeed
"""

from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tabular_dal.errors import Status

# JSON-compatible value type.
type JsonValue = str | int | float | bool | None | list["JsonValue"] | dict[str, "JsonValue"]

# Timestamp value asking the server to assign the cell timestamp.
SERVER_SET_TIMESTAMP = -1


class Page[T](BaseModel):
    """One page of a listing call."""

    items: list[T] = Field(default_factory=list)
    """Items on this page, in server order."""

    next_page_token: str = ""
    """Opaque continuation token. Empty when there are no more pages."""


class Pending(BaseModel, frozen=True):
    """The operation has not finished yet."""

    state: Literal["pending"] = "pending"


class Done[T](BaseModel, frozen=True):
    """The operation finished and produced a value."""

    state: Literal["done"] = "done"
    value: T


class Failed(BaseModel, frozen=True):
    """The operation finished with a server-reported error."""

    state: Literal["failed"] = "failed"
    status: Status


type OperationState = Pending | Done[JsonValue] | Failed


class Operation(BaseModel, frozen=True):
    """Handle for server-side asynchronous work."""

    name: str
    """Server-assigned identifier, used to poll the operation."""

    done: bool = False
    """True once the operation has finished, successfully or not."""

    response: JsonValue = None
    """Result payload, present when done without error."""

    error: Status | None = None
    """Terminal error, present when done with a failure."""

    metadata: dict[str, JsonValue] = Field(default_factory=dict)
    """Service-specific progress information."""

    def state(self) -> OperationState:
        """Classify this handle into one of its three states."""
        if not self.done:
            return Pending()
        if self.error is not None and not self.error.ok:
            return Failed(status=self.error)
        return Done(value=self.response)


class InstanceState(StrEnum):
    STATE_NOT_KNOWN = "STATE_NOT_KNOWN"
    READY = "READY"
    CREATING = "CREATING"


class InstanceType(StrEnum):
    TYPE_UNSPECIFIED = "TYPE_UNSPECIFIED"
    PRODUCTION = "PRODUCTION"
    DEVELOPMENT = "DEVELOPMENT"


class StorageType(StrEnum):
    STORAGE_TYPE_UNSPECIFIED = "STORAGE_TYPE_UNSPECIFIED"
    SSD = "SSD"
    HDD = "HDD"


class Instance(BaseModel):
    """A group of clusters serving the same tables."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = ""
    """Full resource name: `projects/<project>/instances/<instance>`."""

    display_name: str = ""
    state: InstanceState = InstanceState.STATE_NOT_KNOWN
    type: InstanceType = InstanceType.TYPE_UNSPECIFIED
    labels: dict[str, str] = Field(default_factory=dict)


class Cluster(BaseModel):
    """A set of serving nodes in one location."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = ""
    """Full resource name: `projects/<p>/instances/<i>/clusters/<c>`."""

    location: str = ""
    serve_nodes: int = 0
    default_storage_type: StorageType = StorageType.STORAGE_TYPE_UNSPECIFIED


class SetCell(BaseModel, frozen=True):
    """Write a value into a cell."""

    kind: Literal["set_cell"] = "set_cell"
    family_name: str
    column_qualifier: bytes
    timestamp_micros: int = SERVER_SET_TIMESTAMP
    """Explicit timestamp, or `SERVER_SET_TIMESTAMP` to let the server pick."""

    value: bytes


class DeleteFromColumn(BaseModel, frozen=True):
    """Delete cells from a column, optionally within a timestamp range."""

    kind: Literal["delete_from_column"] = "delete_from_column"
    family_name: str
    column_qualifier: bytes
    start_timestamp_micros: int | None = None
    end_timestamp_micros: int | None = None


class DeleteFromFamily(BaseModel, frozen=True):
    kind: Literal["delete_from_family"] = "delete_from_family"
    family_name: str


class DeleteFromRow(BaseModel, frozen=True):
    kind: Literal["delete_from_row"] = "delete_from_row"


Mutation = Annotated[
    SetCell | DeleteFromColumn | DeleteFromFamily | DeleteFromRow,
    Field(discriminator="kind"),
]


class SingleRowMutation(BaseModel, frozen=True):
    """Mutations applied atomically to one row."""

    row_key: bytes
    mutations: list[Mutation] = Field(default_factory=list)


class BulkMutation(BaseModel, frozen=True):
    """Independent row mutations sent in a single request."""

    entries: list[SingleRowMutation] = Field(default_factory=list)


class FailedMutation(BaseModel, frozen=True):
    """A batch entry that did not succeed within the retry budget."""

    index: int
    """Position of the entry in the caller's original batch."""

    status: Status
    """Last error reported for this entry."""

    mutation: SingleRowMutation


class RowKeySample(BaseModel, frozen=True):
    """A row key and the approximate number of bytes stored before it."""

    row_key: bytes
    offset_bytes: int


class Cell(BaseModel, frozen=True):
    family_name: str
    column_qualifier: bytes
    timestamp_micros: int = 0
    value: bytes = b""


class Row(BaseModel, frozen=True):
    row_key: bytes
    cells: list[Cell] = Field(default_factory=list)


class ReadModifyWriteRule(BaseModel, frozen=True):
    """Append to or increment a single cell, evaluated by the server."""

    family_name: str
    column_qualifier: bytes
    append_value: bytes | None = None
    increment_amount: int | None = None
