"""Iteration over multi-page listings."""

import logging
from collections.abc import AsyncIterator, Callable, Sequence
from operator import attrgetter
from typing import ClassVar

from tabular_dal.contexts import MetadataUpdatePolicy
from tabular_dal.engine.executor import CallExecutor
from tabular_dal.protocols import UnaryCall

logger = logging.getLogger(__name__)


class Paginator[Req, Resp, T]:
    """Lazily yield every item of a listing, one page at a time.

    The request for each page is built by `request_factory` from the token
    returned with the previous page (the first request gets `""`). Iteration
    stops when a page comes back with an empty token. All pages share one
    retry budget.

    A paginator can be iterated once. If a page fetch fails, the error
    propagates and no further items are produced; items already yielded
    are not affected.
    """

    __slots__: ClassVar[tuple[str, ...]] = (
        "_executor",
        "_items",
        "_metadata_policy",
        "_next_token",
        "_operation",
        "_pages",
        "_request_factory",
        "_rpc",
        "_started",
    )

    def __init__(
        self,
        executor: CallExecutor,
        rpc: UnaryCall[Req, Resp],
        request_factory: Callable[[str], Req],
        *,
        operation: str,
        items: Callable[[Resp], Sequence[T]] = attrgetter("items"),
        next_token: Callable[[Resp], str] = attrgetter("next_page_token"),
        metadata_policy: MetadataUpdatePolicy | None = None,
    ) -> None:
        self._executor = executor
        self._rpc = rpc
        self._request_factory = request_factory
        self._operation = operation
        self._items = items
        self._next_token = next_token
        self._metadata_policy = metadata_policy
        self._pages = 0
        self._started = False

    @property
    def pages(self) -> int:
        """Number of pages fetched so far."""
        return self._pages

    def __aiter__(self) -> AsyncIterator[T]:
        if self._started:
            msg = f"{self._operation}: a paginator can only be iterated once"
            raise RuntimeError(msg)
        self._started = True
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[T]:
        ctx = self._executor.new_context(self._operation, self._metadata_policy)
        token = ""
        while True:
            request = self._request_factory(token)
            response = await self._executor.call(
                self._rpc,
                request,
                operation=self._operation,
                context=ctx,
            )
            self._pages += 1
            for item in self._items(response):
                yield item
            token = self._next_token(response) or ""
            if not token:
                break
        logger.debug("%s: listing complete after %d pages", self._operation, self._pages)

    async def collect(self) -> list[T]:
        """Fetch every page and return all items in order."""
        return [item async for item in self]
