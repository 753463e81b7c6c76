"""Row-level data operations on a single table."""

from typing import ClassVar, Self

from tabular_dal.contexts import MetadataParamType, MetadataUpdatePolicy
from tabular_dal.datatypes import (
    BulkMutation,
    FailedMutation,
    JsonValue,
    Mutation,
    ReadModifyWriteRule,
    Row,
    RowKeySample,
    SingleRowMutation,
)
from tabular_dal.engine.executor import CallExecutor, Sleep
from tabular_dal.engine.mutations import BulkMutator, apply_bulk
from tabular_dal.errors import RpcError
from tabular_dal.logging import enable_stderr_logging
from tabular_dal.messages import (
    CheckAndMutateRowRequest,
    MutateRowRequest,
    ReadModifyWriteRowRequest,
    ReadRowRequest,
    SampleRowKeysRequest,
)
from tabular_dal.params import ClientParams
from tabular_dal.policies.backoff import BackoffPolicy
from tabular_dal.policies.idempotency import (
    IdempotentMutationPolicy,
    default_idempotent_mutation_policy,
)
from tabular_dal.policies.retry import RetryPolicy
from tabular_dal.protocols import DataTransport


class Table:
    """Read, mutate and sample the rows of one table.

    Mutation failures are reported as `FailedMutation` lists rather than
    raised: the caller decides what a partial failure means.
    """

    __slots__: ClassVar[tuple[str, ...]] = (
        "_app_profile_id",
        "_executor",
        "_mutation_policy",
        "_table_name",
        "_transport",
    )

    def __init__(
        self,
        transport: DataTransport,
        project_id: str,
        instance_id: str,
        table_id: str,
        *,
        app_profile_id: str = "",
        retry_policy: RetryPolicy | None = None,
        backoff_policy: BackoffPolicy | None = None,
        mutation_policy: IdempotentMutationPolicy | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        self._transport = transport
        self._table_name = f"projects/{project_id}/instances/{instance_id}/tables/{table_id}"
        self._app_profile_id = app_profile_id
        self._mutation_policy = (
            mutation_policy if mutation_policy is not None else default_idempotent_mutation_policy()
        )
        routing = MetadataUpdatePolicy(
            resource_name=self._table_name,
            param_type=MetadataParamType.TABLE_NAME,
        )
        self._executor = CallExecutor(retry_policy, backoff_policy, routing, sleep=sleep)

    @classmethod
    def from_params(cls, transport: DataTransport, params: ClientParams, table_id: str) -> Self:
        if params.instance_id is None:
            msg = "instance_id is required to open a table"
            raise ValueError(msg)
        if params.log_level:
            _ = enable_stderr_logging(params.log_level)
        return cls(
            transport,
            params.project_id,
            params.instance_id,
            table_id,
            app_profile_id=params.app_profile_id,
            retry_policy=params.retry.build(),
            backoff_policy=params.backoff.build(),
            mutation_policy=params.mutation_policy(),
        )

    @property
    def table_name(self) -> str:
        return self._table_name

    @property
    def app_profile_id(self) -> str:
        return self._app_profile_id

    async def apply(self, mutation: SingleRowMutation) -> list[FailedMutation]:
        """Atomically apply the mutations of one row.

        The call is retried only if every mutation in it is idempotent.
        Returns an empty list on success, or a single `FailedMutation` with
        index 0 carrying the last error.
        """
        request = MutateRowRequest(
            table_name=self._table_name,
            app_profile_id=self._app_profile_id,
            row_key=mutation.row_key,
            mutations=mutation.mutations,
        )
        try:
            await self._executor.call(
                self._transport.mutate_row,
                request,
                operation="Table.Apply",
                idempotent=self._mutation_policy.is_row_idempotent(mutation),
            )
        except RpcError as exc:
            return [FailedMutation(index=0, status=exc.status, mutation=mutation)]
        return []

    async def bulk_apply(self, bulk: BulkMutation) -> list[FailedMutation]:
        """Apply independent row mutations, retrying the entries that can be.

        Returns the entries that ultimately failed, ordered by their index in
        `bulk`. An empty list means every entry was applied.
        """
        mutator = BulkMutator(
            self._table_name,
            self._app_profile_id,
            self._mutation_policy,
            bulk,
        )
        return await apply_bulk(
            self._executor,
            self._transport.mutate_rows,
            mutator,
            operation="Table.BulkApply",
        )

    async def check_and_mutate_row(
        self,
        row_key: bytes,
        predicate_filter: JsonValue,
        true_mutations: list[Mutation],
        false_mutations: list[Mutation],
    ) -> bool:
        """Apply one set of mutations depending on a predicate; never retried.

        Returns whether the predicate matched.
        """
        response = await self._executor.call_once(
            self._transport.check_and_mutate_row,
            CheckAndMutateRowRequest(
                table_name=self._table_name,
                app_profile_id=self._app_profile_id,
                row_key=row_key,
                predicate_filter=predicate_filter,
                true_mutations=true_mutations,
                false_mutations=false_mutations,
            ),
            operation="Table.CheckAndMutateRow",
        )
        return response.predicate_matched

    async def read_modify_write_row(
        self,
        row_key: bytes,
        rule: ReadModifyWriteRule,
        *rules: ReadModifyWriteRule,
    ) -> Row:
        """Apply server-evaluated append/increment rules; never retried."""
        return await self._executor.call_once(
            self._transport.read_modify_write_row,
            ReadModifyWriteRowRequest(
                table_name=self._table_name,
                app_profile_id=self._app_profile_id,
                row_key=row_key,
                rules=[rule, *rules],
            ),
            operation="Table.ReadModifyWriteRow",
        )

    async def read_row(self, row_key: bytes, row_filter: JsonValue = None) -> Row | None:
        """Read one row, retrying transient failures.

        Returns None when the row does not exist or no cell passes `row_filter`.
        """
        response = await self._executor.call(
            self._transport.read_row,
            ReadRowRequest(
                table_name=self._table_name,
                app_profile_id=self._app_profile_id,
                row_key=row_key,
                filter=row_filter,
            ),
            operation="Table.ReadRow",
        )
        return response.row

    async def sample_row_keys(self) -> list[RowKeySample]:
        """Return row key samples describing how the table is split.

        Each retry starts from scratch, so a failed attempt never leaves
        partial samples in the result.
        """
        response = await self._executor.call(
            self._transport.sample_row_keys,
            SampleRowKeysRequest(
                table_name=self._table_name,
                app_profile_id=self._app_profile_id,
            ),
            operation="Table.SampleRowKeys",
        )
        return list(response.samples)
