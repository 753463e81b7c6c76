"""Core protocols for transports."""

from collections.abc import Sequence
from typing import Protocol, TypeVar, runtime_checkable

from tabular_dal.datatypes import Cluster, Instance, Operation, Page, Row
from tabular_dal.messages import (
    CheckAndMutateRowRequest,
    CheckAndMutateRowResponse,
    CreateClusterRequest,
    CreateInstanceRequest,
    DeleteClusterRequest,
    DeleteInstanceRequest,
    GetClusterRequest,
    GetInstanceRequest,
    GetOperationRequest,
    ListClustersRequest,
    ListInstancesRequest,
    MutateRowRequest,
    MutateRowsRequest,
    MutateRowsResponse,
    ReadModifyWriteRowRequest,
    ReadRowRequest,
    ReadRowResponse,
    SampleRowKeysRequest,
    SampleRowKeysResponse,
    UpdateClusterRequest,
    UpdateInstanceRequest,
)

Req_contra = TypeVar("Req_contra", contravariant=True)
Resp_co = TypeVar("Resp_co", covariant=True)

# Request metadata: ordered (key, value) pairs, as carried by RPC channels.
type Metadata = Sequence[tuple[str, str]]


@runtime_checkable
class UnaryCall(Protocol[Req_contra, Resp_co]):
    """A single request/response exchange with the service."""

    async def __call__(self, request: Req_contra, metadata: Metadata) -> Resp_co:
        """Send `request` and return the response.

        Structured failures are raised as `tabular_dal.errors.RpcError`.
        """
        ...


@runtime_checkable
class InstanceAdminTransport(Protocol):
    """RPCs of the instance administration API."""

    async def list_instances(
        self, request: ListInstancesRequest, metadata: Metadata
    ) -> Page[Instance]: ...

    async def get_instance(self, request: GetInstanceRequest, metadata: Metadata) -> Instance: ...

    async def create_instance(
        self, request: CreateInstanceRequest, metadata: Metadata
    ) -> Operation: ...

    async def update_instance(
        self, request: UpdateInstanceRequest, metadata: Metadata
    ) -> Operation: ...

    async def delete_instance(self, request: DeleteInstanceRequest, metadata: Metadata) -> None: ...

    async def list_clusters(
        self, request: ListClustersRequest, metadata: Metadata
    ) -> Page[Cluster]: ...

    async def get_cluster(self, request: GetClusterRequest, metadata: Metadata) -> Cluster: ...

    async def create_cluster(
        self, request: CreateClusterRequest, metadata: Metadata
    ) -> Operation: ...

    async def update_cluster(
        self, request: UpdateClusterRequest, metadata: Metadata
    ) -> Operation: ...

    async def delete_cluster(self, request: DeleteClusterRequest, metadata: Metadata) -> None: ...

    async def get_operation(self, request: GetOperationRequest, metadata: Metadata) -> Operation: ...


@runtime_checkable
class DataTransport(Protocol):
    """RPCs of the data API."""

    async def mutate_row(self, request: MutateRowRequest, metadata: Metadata) -> None: ...

    async def mutate_rows(
        self, request: MutateRowsRequest, metadata: Metadata
    ) -> MutateRowsResponse: ...

    async def check_and_mutate_row(
        self, request: CheckAndMutateRowRequest, metadata: Metadata
    ) -> CheckAndMutateRowResponse: ...

    async def read_modify_write_row(
        self, request: ReadModifyWriteRowRequest, metadata: Metadata
    ) -> Row: ...

    async def sample_row_keys(
        self, request: SampleRowKeysRequest, metadata: Metadata
    ) -> SampleRowKeysResponse: ...

    async def read_row(self, request: ReadRowRequest, metadata: Metadata) -> ReadRowResponse: ...
