"""Polling of long-running operations."""

import logging
from typing import ClassVar

from pydantic import BaseModel, ValidationError

from tabular_dal.contexts import MetadataParamType, MetadataUpdatePolicy
from tabular_dal.datatypes import Done, Failed, JsonValue, Operation, Pending
from tabular_dal.engine.executor import CallExecutor
from tabular_dal.errors import (
    DalError,
    ErrorKind,
    OperationError,
    PollingExhaustedError,
    RpcError,
    Status,
    StatusCode,
)
from tabular_dal.messages import GetOperationRequest
from tabular_dal.policies.polling import PollingPolicy, default_polling_policy
from tabular_dal.protocols import UnaryCall

logger = logging.getLogger(__name__)

GET_OPERATION = "GetOperation"


class OperationPoller:
    """Drive an `Operation` handle to completion.

    A handle that is already done is resolved without any polling call.
    Otherwise the poller waits per the polling policy, fetches the handle
    again through the executor (which retries transient failures), and
    repeats until the operation is done.
    """

    __slots__: ClassVar[tuple[str, ...]] = ("_executor", "_get_operation", "_polling_policy")

    def __init__(
        self,
        executor: CallExecutor,
        get_operation: UnaryCall[GetOperationRequest, Operation],
        polling_policy: PollingPolicy | None = None,
    ) -> None:
        self._executor = executor
        self._get_operation = get_operation
        self._polling_policy = (
            polling_policy if polling_policy is not None else default_polling_policy()
        )

    async def wait[T: BaseModel](self, operation: Operation, result_type: type[T]) -> T:
        """Return the operation's result, unpacked as `result_type`.

        Raises:
            OperationError: The operation finished with an error.
            PollingExhaustedError: The polling budget ran out first.
            RpcError: A poll failed permanently, or exhausted its retries.
        """
        value = await self.wait_raw(operation)
        return _unpack(operation.name, value, result_type)

    async def wait_raw(self, operation: Operation) -> JsonValue:
        """Return the operation's raw response payload once it is done."""
        policy = self._polling_policy.clone()
        routing = MetadataUpdatePolicy(
            resource_name=operation.name,
            param_type=MetadataParamType.NAME,
        )
        request = GetOperationRequest(name=operation.name)
        current = operation
        polls = 0
        # Set when the last poll returned a pending handle. A failed poll has
        # already been charged through on_failure.
        charge_pending = False
        while True:
            match current.state():
                case Done(value=value):
                    logger.debug("operation %s done after %d polls", operation.name, polls)
                    return value
                case Failed(status=status):
                    logger.debug("operation %s failed after %d polls: %s", operation.name, polls, status)
                    raise OperationError(status, operation.name)
                case Pending():
                    pass

            if charge_pending and not policy.on_pending():
                logger.warning("operation %s still pending after %d polls", operation.name, polls)
                raise PollingExhaustedError(operation.name, polls)

            await self._executor.sleep(policy.wait_period())
            polls += 1
            try:
                current = await self._executor.call(
                    self._get_operation,
                    request,
                    operation=GET_OPERATION,
                    metadata_policy=routing,
                )
            except RpcError as exc:
                if not policy.on_failure(exc.status):
                    raise
                logger.debug("operation %s: poll %d failed with %s", operation.name, polls, exc.status)
                charge_pending = False
            else:
                charge_pending = True


def _unpack[T: BaseModel](name: str, value: JsonValue, result_type: type[T]) -> T:
    if isinstance(value, dict):
        # Typed payload containers carry their type URL next to the fields.
        value = {k: v for k, v in value.items() if k != "@type"}
    try:
        return result_type.model_validate(value)
    except ValidationError as e:
        msg = f"operation {name} returned a response that is not a {result_type.__name__}"
        raise DalError(
            msg,
            kind=ErrorKind.PERMANENT,
            source=e,
            status=Status(code=StatusCode.INTERNAL, message=msg),
        ) from e
