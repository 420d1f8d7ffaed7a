"""Deferred call queue shared by documents and result sets.

Operations are coroutines that run immediately when awaited. The same
operations can instead be recorded through ``instance.queue`` and replayed
later, strictly in order, with ``await instance.exec()``:

    >>> doc.queue.populate("author").save()
    >>> await doc.exec()  # populate completes before save starts
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, ClassVar, Self, TypeVar

logger = logging.getLogger("elastic_bridge.deferred")

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class DeferredCall:
    """One recorded ``(operation, arguments)`` pair."""

    operation: str
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = field(default_factory=dict)


class DeferredCalls:
    """Recorder returned by ``Deferrable.queue``.

    Attribute access yields a recording function for each deferrable
    operation of the owner; calling it appends a DeferredCall and returns
    the recorder so calls can be chained.
    """

    def __init__(self, owner: Deferrable) -> None:
        self._owner = owner

    def __getattr__(self, operation: str) -> Callable[..., DeferredCalls]:
        if operation not in self._owner.deferrable_operations:
            raise AttributeError(
                f"{type(self._owner).__name__} has no deferrable operation {operation!r}"
            )

        def record(*args: Any, **kwargs: Any) -> DeferredCalls:
            self._owner.defer(operation, *args, **kwargs)
            return self

        return record

    async def exec(self) -> None:
        await self._owner.exec()

    def __len__(self) -> int:
        return len(self._owner.pending_calls)


class Deferrable:
    """Mixin giving an object an ordered queue of deferred operations."""

    deferrable_operations: ClassVar[frozenset[str]] = frozenset()

    _pending: list[DeferredCall]

    @property
    def pending_calls(self) -> list[DeferredCall]:
        try:
            return self._pending
        except AttributeError:
            self._pending = []
            return self._pending

    @property
    def queue(self) -> DeferredCalls:
        return DeferredCalls(self)

    def defer(self, operation: str, *args: Any, **kwargs: Any) -> Self:
        """Record ``operation(*args, **kwargs)`` for the next ``exec``."""
        if operation not in self.deferrable_operations:
            raise ValueError(f"{type(self).__name__} cannot defer {operation!r}")
        self.pending_calls.append(DeferredCall(operation, args, kwargs))
        return self

    async def exec(self) -> None:
        """Replay recorded operations one at a time, in record order.

        The queue is consumed. The first failing operation stops the replay;
        the calls after it are discarded and its error is raised.
        """
        calls, self._pending = list(self.pending_calls), []
        for position, call in enumerate(calls):
            logger.debug(
                "Replaying %s.%s (%d/%d)",
                type(self).__name__, call.operation, position + 1, len(calls),
            )
            await getattr(self, call.operation)(*call.args, **call.kwargs)


async def each_limit(
    items: Iterable[T],
    limit: int,
    fn: Callable[[T], Awaitable[Any]],
) -> None:
    """Run ``fn`` over ``items`` with at most ``limit`` calls in flight.

    Items are dispatched in order. Once any call fails no further item is
    dispatched; calls already running are allowed to finish and the first
    error is then raised.
    """
    iterator = iter(items)
    errors: list[BaseException] = []

    async def worker() -> None:
        for item in iterator:
            if errors:
                return
            try:
                await fn(item)
            except Exception as exc:
                errors.append(exc)
                return

    await asyncio.gather(*(worker() for _ in range(max(1, limit))))
    if errors:
        raise errors[0]
