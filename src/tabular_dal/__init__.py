"""Client-side retry, pagination, operation polling and batch mutation engine
for a distributed tabular storage service."""

from tabular_dal.admin import InstanceAdmin
from tabular_dal.contexts import CallContext, MetadataParamType, MetadataUpdatePolicy
from tabular_dal.datatypes import (
    BulkMutation,
    Cluster,
    DeleteFromColumn,
    DeleteFromFamily,
    DeleteFromRow,
    FailedMutation,
    Instance,
    Operation,
    Page,
    SetCell,
    SingleRowMutation,
)
from tabular_dal.engine import BulkMutator, CallExecutor, OperationPoller, Paginator, apply_bulk
from tabular_dal.errors import (
    DalError,
    ErrorKind,
    OperationError,
    PollingExhaustedError,
    RpcError,
    Status,
    StatusCode,
)
from tabular_dal.params import BackoffParams, ClientParams, PollingParams, RetryParams
from tabular_dal.protocols import DataTransport, InstanceAdminTransport, UnaryCall
from tabular_dal.table import Table

__all__ = [
    "BackoffParams",
    "BulkMutation",
    "BulkMutator",
    "CallContext",
    "CallExecutor",
    "ClientParams",
    "Cluster",
    "DalError",
    "DataTransport",
    "DeleteFromColumn",
    "DeleteFromFamily",
    "DeleteFromRow",
    "ErrorKind",
    "FailedMutation",
    "Instance",
    "InstanceAdmin",
    "InstanceAdminTransport",
    "MetadataParamType",
    "MetadataUpdatePolicy",
    "Operation",
    "OperationError",
    "OperationPoller",
    "Page",
    "Paginator",
    "PollingExhaustedError",
    "PollingParams",
    "RetryParams",
    "RpcError",
    "SetCell",
    "SingleRowMutation",
    "Status",
    "StatusCode",
    "Table",
    "UnaryCall",
    "apply_bulk",
]
