from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from ..base.schema import SchemaDescriptor
    from .query import QueryOptions

ID_FIELD = "id"


@dataclass(slots=True, frozen=True)
class SearchRequest:
    """Arguments for ``ElasticsearchBackend.search``."""

    index: str
    query: dict[str, Any]
    sort: dict[str, str] = field(default_factory=dict)
    from_: int = 0
    size: int = 10
    source_includes: list[str] | None = None
    source_excludes: list[str] | None = None
    track_total_hits: bool | None = None


@dataclass(slots=True, frozen=True)
class MultiGetRequest:
    """Arguments for ``ElasticsearchBackend.multi_get``."""

    index: str
    ids: list[str]
    source_includes: list[str] | None = None
    source_excludes: list[str] | None = None


class ElasticRequestTranslator:
    """Translates match criteria and query options to engine requests."""

    DESCENDING: ClassVar[tuple[Any, ...]] = ("desc", "descending", -1)

    @classmethod
    def translate(
        cls,
        descriptor: SchemaDescriptor,
        criteria: Mapping[str, Any] | None,
        options: QueryOptions,
    ) -> SearchRequest | MultiGetRequest:
        """Build the request for one query execution.

        Criteria carrying an ``id`` become a multi-get; anything else is a
        search.
        """
        includes = cls.translate_selection(options.fields)
        excludes = None if includes else (descriptor.excluded_fields() or None)

        ids = cls.lookup_ids(criteria)
        if ids is not None:
            return MultiGetRequest(
                index=descriptor.index,
                ids=ids,
                source_includes=includes,
                source_excludes=excludes,
            )

        if options.count_only:
            return SearchRequest(
                index=descriptor.index,
                query=cls.translate_match(criteria),
                from_=0,
                size=0,
                track_total_hits=True,
            )

        return SearchRequest(
            index=descriptor.index,
            query=cls.translate_match(criteria),
            sort=cls.translate_sort(options.sort),
            from_=options.skip,
            size=options.limit,
            source_includes=includes,
            source_excludes=excludes,
        )

    @classmethod
    def is_single(cls, criteria: Mapping[str, Any] | None) -> bool:
        """A scalar string id asks for one document, not a collection."""
        return bool(criteria) and isinstance(criteria.get(ID_FIELD), str)  # type: ignore[union-attr]

    @classmethod
    def lookup_ids(cls, criteria: Mapping[str, Any] | None) -> list[str] | None:
        """Ids to multi-get, always as a flat list; None when criteria has no id."""
        if not criteria or criteria.get(ID_FIELD) in (None, ""):
            return None

        value = criteria[ID_FIELD]
        if isinstance(value, str):
            return [value]
        if isinstance(value, Sequence):
            return [str(item) for item in value]
        return [str(value)]

    @classmethod
    def translate_match(cls, criteria: Mapping[str, Any] | None) -> dict[str, Any]:
        """Translate match criteria to an engine query.

        Empty criteria match everything. The engine's ``match`` takes a single
        field, so several fields are ANDed in a ``bool.must``.
        """
        if not criteria:
            return {"match_all": {}}

        if len(criteria) == 1:
            return {"match": dict(criteria)}

        return {"bool": {"must": [{"match": {key: value}} for key, value in criteria.items()]}}

    @classmethod
    def normalize_direction(cls, direction: Any) -> str:
        return "desc" if direction in cls.DESCENDING else "asc"

    @classmethod
    def translate_sort(cls, sort: Mapping[str, Any]) -> dict[str, str]:
        """Translate an ordered ``field -> direction`` mapping."""
        return {key: cls.normalize_direction(direction) for key, direction in sort.items()}

    @classmethod
    def translate_selection(cls, fields: str | Sequence[str] | None) -> list[str] | None:
        """Translate a field selection (``"a b"`` or ``["a", "b"]``) to source includes."""
        if not fields:
            return None
        if isinstance(fields, str):
            return fields.split()
        return list(fields)
