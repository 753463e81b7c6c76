"""Call execution engine: retries, pagination, operation polling and batch mutation."""

from tabular_dal.engine.executor import CallExecutor
from tabular_dal.engine.mutations import BulkMutator, apply_bulk
from tabular_dal.engine.operations import OperationPoller
from tabular_dal.engine.paginator import Paginator

__all__ = [
    "BulkMutator",
    "CallExecutor",
    "OperationPoller",
    "Paginator",
    "apply_bulk",
]
