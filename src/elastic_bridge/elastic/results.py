from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any, Generic, Self, TypeVar, overload

from ..base.deferred import Deferrable, each_limit
from .document import Document

T = TypeVar("T", bound=Document)


class ResultSet(Deferrable, Sequence[T], Generic[T]):
    """Ordered documents of one query, in engine hit order.

    Batch verbs apply the document operation to every member with bounded
    concurrency; the first failure stops dispatching further members and
    is raised once the members already running have finished.
    """

    deferrable_operations = frozenset({"populate", "save", "update", "remove"})

    def __init__(
        self,
        model: type[T],
        hits: Iterable[Mapping[str, Any]] = (),
        *,
        partial: bool = False,
    ) -> None:
        self.model = model
        self._items: list[T] = [model.from_hit(hit, partial=partial) for hit in hits]

    @classmethod
    def of(cls, model: type[T], documents: Iterable[T]) -> ResultSet[T]:
        """Wrap documents that are already built."""
        results = cls(model)
        results._items = list(documents)
        return results

    @overload
    def __getitem__(self, index: int) -> T: ...

    @overload
    def __getitem__(self, index: slice) -> list[T]: ...

    def __getitem__(self, index: int | slice) -> T | list[T]:
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    @property
    def ids(self) -> list[str | None]:
        return [doc.id for doc in self._items]

    def to_list(self) -> list[dict[str, Any]]:
        return [doc.to_dict() for doc in self._items]

    async def populate(self, path: str) -> Self:
        await each_limit(self._items, self.model._fan_out(), lambda doc: doc.populate(path))
        return self

    async def save(self) -> Self:
        await each_limit(self._items, self.model._fan_out(), lambda doc: doc.save())
        return self

    async def update(self, data: Mapping[str, Any]) -> Self:
        await each_limit(self._items, self.model._fan_out(), lambda doc: doc.update(data))
        return self

    async def remove(self) -> Self:
        await each_limit(self._items, self.model._fan_out(), lambda doc: doc.remove())
        return self

    def __repr__(self) -> str:
        return f"ResultSet({self.model.__name__}, {self._items!r})"
