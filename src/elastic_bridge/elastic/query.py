"""
Chainable query builder.

Chain methods record options and return the query; nothing is sent until
the query is executed with ``await query.exec()`` (or simply ``await query``).

Example:
    >>> posts = await Post.find({"author": "ann"}).sort({"date": "desc"}).limit(5)
    >>> post = await Post.find_by_id("42").populate("author")
    >>> total = await Post.count({"published": True})
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import AsyncIterator, Generator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, Self, TypeAlias, TypeVar

from ..base.deferred import each_limit
from .document import Document
from .results import ResultSet
from .translator import ElasticRequestTranslator, MultiGetRequest

logger = logging.getLogger("elastic_bridge.query")

DEFAULT_LIMIT = 10


@dataclass(slots=True)
class QueryOptions:
    """Accumulated options of a query; copied when the query executes."""

    skip: int = 0
    limit: int = DEFAULT_LIMIT
    fields: str | list[str] | None = None
    sort: dict[str, Any] = field(default_factory=dict)
    lean: bool = False
    populate: str | None = None
    count_only: bool = False

    def snapshot(self) -> QueryOptions:
        return dataclasses.replace(
            self,
            sort=dict(self.sort),
            fields=list(self.fields) if isinstance(self.fields, list) else self.fields,
        )


T = TypeVar("T", bound=Document)

QueryResult: TypeAlias = T | ResultSet[T] | list[dict[str, Any]] | int | None


class Query(Generic[T]):
    """Query builder over one model's index."""

    def __init__(
        self,
        model: type[T],
        criteria: Mapping[str, Any] | None = None,
        *,
        single: bool = False,
    ) -> None:
        self.model = model
        self.criteria: dict[str, Any] = dict(criteria or {})
        self.options = QueryOptions(limit=self._default_limit(model))
        self._single = single

    @staticmethod
    def _default_limit(model: type[Document]) -> int:
        if model._connection is None:
            return DEFAULT_LIMIT
        return model._connection.settings.default_limit

    def where(self, criteria: Mapping[str, Any]) -> Self:
        """Merge additional match criteria."""
        self.criteria.update(criteria)
        return self

    def sort(self, spec: Mapping[str, Any] | str) -> Self:
        """Set the sort order.

        Args:
            spec: Ordered mapping of field to direction (``"desc"``,
                  ``"descending"`` or ``-1`` sort descending, anything else
                  ascending), or a string such as ``"-date title"``.
        """
        if isinstance(spec, str):
            spec = {
                name.lstrip("-"): "desc" if name.startswith("-") else "asc"
                for name in spec.split()
            }
        self.options.sort = dict(spec)
        return self

    def limit(self, n: int) -> Self:
        self.options.limit = n
        return self

    def skip(self, n: int) -> Self:
        self.options.skip = n
        return self

    def select(self, fields: str | Sequence[str]) -> Self:
        """Return only these fields (``"title author"`` or a list)."""
        self.options.fields = fields if isinstance(fields, str) else list(fields)
        return self

    def lean(self, value: bool = True) -> Self:
        """Return raw hits instead of documents."""
        self.options.lean = value
        return self

    def populate(self, path: str) -> Self:
        self.options.populate = path
        return self

    def count(self) -> Self:
        """Resolve to the number of matching documents."""
        self.options.count_only = True
        return self

    async def exec(self) -> QueryResult[T]:
        """Execute the query.

        Returns:
            The hit count for count queries; a single document (or None) for
            scalar id lookups and ``find_one``; otherwise a ResultSet, or the
            raw hits in lean mode.
        """
        options = self.options.snapshot()
        descriptor = self.model._descriptor
        single = (self._single or ElasticRequestTranslator.is_single(self.criteria)) and not options.count_only

        request = ElasticRequestTranslator.translate(descriptor, self.criteria, options)
        backend = self.model._backend()

        if isinstance(request, MultiGetRequest):
            hits = await backend.multi_get(
                request.index,
                request.ids,
                source_includes=request.source_includes,
                source_excludes=request.source_excludes,
            )
            total = len(hits)
        else:
            hits, total = await backend.search(
                request.index,
                query=request.query,
                sort=request.sort,
                from_=request.from_,
                size=request.size,
                source_includes=request.source_includes,
                source_excludes=request.source_excludes,
                track_total_hits=request.track_total_hits,
            )
        logger.debug("%s query returned %d hits (total %d)", descriptor.name, len(hits), total)

        if options.count_only:
            return total

        results: ResultSet[T] | list[dict[str, Any]]
        if not options.lean or options.populate:
            partial = bool(request.source_includes or request.source_excludes)
            results = ResultSet(self.model, hits, partial=partial)
        else:
            results = hits

        if options.populate:
            path = options.populate
            await each_limit(results, self.model._fan_out(), lambda doc: doc.populate(path))

        if single:
            return results[0] if len(results) else None
        return results

    def __await__(self) -> Generator[Any, None, QueryResult[T]]:
        return self.exec().__await__()

    async def stream(self) -> AsyncIterator[Any]:
        """Iterate over every match, fetching ``limit`` hits per request."""
        if self.options.count_only:
            raise ValueError("Cannot stream a count query")

        page_query = self._clone()
        page_query._single = False

        if ElasticRequestTranslator.lookup_ids(self.criteria) is not None:
            for item in await page_query.exec():  # type: ignore[union-attr]
                yield item
            return

        if self.options.limit <= 0:
            raise ValueError("Cannot stream with a limit of 0")

        start = self.options.skip
        while True:
            page = await page_query.skip(start).exec()
            if not page:
                return
            for item in page:  # type: ignore[union-attr]
                yield item
            start += self.options.limit

    def _clone(self) -> Query[T]:
        new_query = Query(self.model, self.criteria, single=self._single)
        new_query.options = self.options.snapshot()
        return new_query

    def __repr__(self) -> str:
        return f"Query({self.model.__name__}, {self.criteria!r}, {self.options!r})"
