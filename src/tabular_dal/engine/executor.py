"""Unary call execution with retry and backoff."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import ClassVar

from tabular_dal.contexts import CallContext, MetadataUpdatePolicy
from tabular_dal.errors import RpcError
from tabular_dal.policies.backoff import BackoffPolicy, default_backoff_policy
from tabular_dal.policies.retry import RetryPolicy, default_retry_policy
from tabular_dal.protocols import Metadata, UnaryCall

logger = logging.getLogger(__name__)

type Sleep = Callable[[float], Awaitable[None]]


class CallExecutor:
    """Runs logical calls against a transport, retrying transient failures.

    The executor holds policy prototypes only. Every logical call gets a
    `CallContext` with its own clones, so one executor can serve any number
    of concurrent calls.
    """

    __slots__: ClassVar[tuple[str, ...]] = (
        "_backoff_policy",
        "_clock",
        "_metadata_policy",
        "_retry_policy",
        "_sleep",
    )

    def __init__(
        self,
        retry_policy: RetryPolicy | None = None,
        backoff_policy: BackoffPolicy | None = None,
        metadata_policy: MetadataUpdatePolicy | None = None,
        *,
        sleep: Sleep | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._retry_policy = retry_policy if retry_policy is not None else default_retry_policy()
        self._backoff_policy = (
            backoff_policy if backoff_policy is not None else default_backoff_policy()
        )
        self._metadata_policy = metadata_policy
        self._sleep = sleep if sleep is not None else asyncio.sleep
        self._clock = clock

    @property
    def sleep(self) -> Sleep:
        return self._sleep

    def metadata_for(self, metadata_policy: MetadataUpdatePolicy | None = None) -> Metadata:
        policy = metadata_policy if metadata_policy is not None else self._metadata_policy
        return policy.metadata() if policy is not None else ()

    def new_context(
        self,
        operation: str,
        metadata_policy: MetadataUpdatePolicy | None = None,
    ) -> CallContext:
        """Start a logical call with fresh copies of the policies."""
        return CallContext(
            operation,
            retry=self._retry_policy.clone(),
            backoff=self._backoff_policy.clone(),
            metadata=self.metadata_for(metadata_policy),
            clock=self._clock,
        )

    async def call[Req, Resp](
        self,
        rpc: UnaryCall[Req, Resp],
        request: Req,
        *,
        operation: str,
        idempotent: bool = True,
        context: CallContext | None = None,
        metadata_policy: MetadataUpdatePolicy | None = None,
    ) -> Resp:
        """Invoke `rpc` until it succeeds or the failure may not be retried.

        The same request is sent on every attempt. When retries stop, the
        last `RpcError` is re-raised unchanged. A non-idempotent call is
        attempted once.

        Pass `context` to share one retry budget across several requests,
        as the paginator does for the pages of a listing.
        """
        ctx = context if context is not None else self.new_context(operation, metadata_policy)
        while True:
            ctx.attempts += 1
            try:
                return await rpc(request, ctx.metadata)
            except RpcError as exc:
                if not idempotent:
                    logger.debug(
                        "%s: non-idempotent call failed with %s, not retrying",
                        ctx.operation,
                        exc.status,
                    )
                    raise
                if not ctx.retry.on_failure(exc.status):
                    if exc.transient:
                        logger.warning(
                            "%s: giving up after %d attempts in %.3fs: %s",
                            ctx.operation,
                            ctx.attempts,
                            ctx.elapsed,
                            exc.status,
                        )
                    raise
                delay = ctx.backoff.on_completion()
                logger.debug(
                    "%s: attempt %d failed with %s, retrying in %.3fs",
                    ctx.operation,
                    ctx.attempts,
                    exc.status,
                    delay,
                )
                await self._sleep(delay)

    async def call_once[Req, Resp](
        self,
        rpc: UnaryCall[Req, Resp],
        request: Req,
        *,
        operation: str,
        metadata_policy: MetadataUpdatePolicy | None = None,
    ) -> Resp:
        """Invoke `rpc` exactly once, without entering the retry loop.

        Used for calls such as deletes, where a retry against an already
        changed resource could hide the outcome of the first attempt.
        """
        try:
            return await rpc(request, self.metadata_for(metadata_policy))
        except RpcError as exc:
            logger.debug("%s: single-attempt call failed with %s", operation, exc.status)
            raise
