"""Request and response shapes exchanged with a transport.

Listing requests carry a `page_token`; listing responses are `Page` values.
Mutating administrative calls answer with an `Operation` handle.
"""

from pydantic import BaseModel, Field

from tabular_dal.datatypes import (
    Cluster,
    Instance,
    JsonValue,
    Mutation,
    ReadModifyWriteRule,
    Row,
    RowKeySample,
    SingleRowMutation,
)
from tabular_dal.errors import Status


class ListInstancesRequest(BaseModel, frozen=True):
    parent: str
    page_token: str = ""


class GetInstanceRequest(BaseModel, frozen=True):
    name: str


class DeleteInstanceRequest(BaseModel, frozen=True):
    name: str


class CreateInstanceRequest(BaseModel, frozen=True):
    parent: str
    instance_id: str
    instance: Instance
    clusters: dict[str, Cluster] = Field(default_factory=dict)
    """Initial clusters keyed by cluster id."""


class UpdateInstanceRequest(BaseModel, frozen=True):
    instance: Instance
    update_mask: list[str] = Field(default_factory=list)
    """Instance fields to overwrite. Empty means all mutable fields."""


class ListClustersRequest(BaseModel, frozen=True):
    parent: str
    """Instance name, or `projects/<p>/instances/-` for every instance."""

    page_token: str = ""


class GetClusterRequest(BaseModel, frozen=True):
    name: str


class DeleteClusterRequest(BaseModel, frozen=True):
    name: str


class CreateClusterRequest(BaseModel, frozen=True):
    parent: str
    cluster_id: str
    cluster: Cluster


class UpdateClusterRequest(BaseModel, frozen=True):
    cluster: Cluster


class GetOperationRequest(BaseModel, frozen=True):
    name: str


class MutateRowRequest(BaseModel, frozen=True):
    table_name: str
    app_profile_id: str = ""
    row_key: bytes
    mutations: list[Mutation] = Field(default_factory=list)


class MutateRowsRequest(BaseModel, frozen=True):
    table_name: str
    app_profile_id: str = ""
    entries: list[SingleRowMutation] = Field(default_factory=list)


class MutateRowsEntry(BaseModel, frozen=True):
    """Outcome of one entry, indexed by its position in the request."""

    index: int
    status: Status


class MutateRowsResponse(BaseModel, frozen=True):
    entries: list[MutateRowsEntry] = Field(default_factory=list)


class CheckAndMutateRowRequest(BaseModel, frozen=True):
    table_name: str
    app_profile_id: str = ""
    row_key: bytes
    predicate_filter: JsonValue = None
    true_mutations: list[Mutation] = Field(default_factory=list)
    false_mutations: list[Mutation] = Field(default_factory=list)


class CheckAndMutateRowResponse(BaseModel, frozen=True):
    predicate_matched: bool = False


class ReadModifyWriteRowRequest(BaseModel, frozen=True):
    table_name: str
    app_profile_id: str = ""
    row_key: bytes
    rules: list[ReadModifyWriteRule] = Field(default_factory=list)


class SampleRowKeysRequest(BaseModel, frozen=True):
    table_name: str
    app_profile_id: str = ""


class SampleRowKeysResponse(BaseModel, frozen=True):
    samples: list[RowKeySample] = Field(default_factory=list)


class ReadRowRequest(BaseModel, frozen=True):
    table_name: str
    app_profile_id: str = ""
    row_key: bytes
    filter: JsonValue = None
    """Server-side row filter. None reads every cell of the row."""


class ReadRowResponse(BaseModel, frozen=True):
    row: Row | None = None
    """The row, or None when no cell of it matched."""
