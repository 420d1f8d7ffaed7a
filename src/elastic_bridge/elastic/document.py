from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar, Self

from ..base.changes import ChangeRecord, changed_fields, diff
from ..base.deferred import Deferrable
from ..errors import MissingIdentifierError, ValidationError

if TYPE_CHECKING:
    from ..base.schema import SchemaDescriptor
    from ..connection import Connection
    from .backend import ElasticsearchBackend, Version
    from .query import Query
    from .results import ResultSet

logger = logging.getLogger("elastic_bridge.document")

_EMPTY: Mapping[str, Any] = MappingProxyType({})
DEFAULT_CONCURRENCY = 4


def serialize(value: Any) -> Any:
    """Storable form of a field value; populated documents collapse to their id."""
    if isinstance(value, Document):
        return value.id
    if isinstance(value, list):
        return [serialize(item) for item in value]
    if isinstance(value, dict):
        return {key: serialize(item) for key, item in value.items()}
    return value


def _freeze(data: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(copy.deepcopy(dict(data)))


class Document(Deferrable):
    """One record of a search index, bound to a compiled schema.

    Model classes are produced by ``Connection.model(name, schema)``; they
    subclass Document with the schema's descriptor, instance methods and
    statics attached.

    Field values are read and written through :meth:`get`/:meth:`set` (or
    item access). ``original`` is a read-only snapshot of what was last
    loaded from or written to the engine and is the baseline for
    :meth:`diff`.
    """

    _descriptor: ClassVar[SchemaDescriptor]
    _connection: ClassVar[Connection | None] = None

    deferrable_operations = frozenset({"populate", "save", "update", "remove", "validate"})

    def __init__(
        self,
        data: Mapping[str, Any] | None = None,
        *,
        id: str | None = None,
        version: Version | None = None,
    ) -> None:
        data = copy.deepcopy(dict(data or {}))
        self._id: str | None = id if id is not None else data.pop("id", None)
        self._version = version
        self._partial = False
        self._current: dict[str, Any] = {}
        self._original: Mapping[str, Any] = _EMPTY

        for name, prop in self._descriptor.props.items():
            if name not in data and prop.has_default:
                self._current[name] = prop.initial_value()
        for name, value in data.items():
            self.set(name, value)

    @classmethod
    def from_hit(cls, hit: Mapping[str, Any], *, partial: bool = False) -> Self:
        """Build a loaded document from a raw search or multi-get hit.

        ``partial`` marks a hit whose ``_source`` was filtered by a field
        selection or ``select=False`` exclusions.
        """
        version = None
        if hit.get("_seq_no") is not None and hit.get("_primary_term") is not None:
            version = (hit["_seq_no"], hit["_primary_term"])

        instance = cls.__new__(cls)
        instance._id = hit.get("_id")
        instance._version = version
        instance._partial = partial
        instance._current = copy.deepcopy(dict(hit.get("_source") or {}))
        instance._original = _freeze(instance._current)
        return instance

    # Identity

    @property
    def id(self) -> str | None:
        return self._id

    @property
    def version(self) -> Version | None:
        """Optimistic concurrency token ``(seq_no, primary_term)``."""
        return self._version

    @property
    def index(self) -> str:
        return self._descriptor.index

    @property
    def doc_type(self) -> str:
        return self._descriptor.doc_type

    @property
    def is_new(self) -> bool:
        """True until the document has been loaded from or written to the engine."""
        return self._original is _EMPTY

    @property
    def is_partial(self) -> bool:
        """True when only some of the stored fields were loaded."""
        return self._partial

    @property
    def original(self) -> Mapping[str, Any]:
        return self._original

    # Field access

    def get(self, name: str, default: Any = None) -> Any:
        virtual = self._descriptor.virtuals.get(name)
        if virtual is not None:
            return virtual.getter(self) if virtual.getter else default
        if name == "id":
            return self._id
        return self._current.get(name, default)

    def set(self, name: str, value: Any) -> None:
        virtual = self._descriptor.virtuals.get(name)
        if virtual is not None:
            if virtual.setter is None:
                raise AttributeError(f"Virtual {name!r} of {type(self).__name__} is read-only")
            virtual.setter(self, value)
            return
        if name == "id":
            self._id = value
            return
        self._current[name] = value

    def __getitem__(self, name: str) -> Any:
        if name not in self:
            raise KeyError(name)
        return self.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __contains__(self, name: object) -> bool:
        return name in self._current or name in self._descriptor.virtuals or name == "id"

    def to_dict(self) -> dict[str, Any]:
        """Field map as it is stored in the engine."""
        return serialize(self._current)

    # Change tracking

    def diff(self) -> list[ChangeRecord]:
        """Changes of the stored form of the fields since ``original``."""
        return diff(self._original, self.to_dict())

    def has_changed(self) -> bool:
        return bool(self.diff())

    # Operations

    async def validate(self) -> None:
        """Check field values against the schema; raises ValidationError.

        Required fields a partially loaded document did not load are not
        reported missing.
        """
        for name, prop in self._descriptor.props.items():
            if name in self._current:
                prop.validate(self._current[name])
            elif prop.required and not self._partial:
                raise ValidationError(name, f"Missing required field: {name}")

    async def save(self) -> Self:
        """Write the full field map, unless a stored document has no changes.

        A partially loaded document is merged into the stored one with an
        update, so fields that were not loaded are kept.
        """
        if not self.is_new and not self.has_changed():
            logger.debug("save %s/%s skipped: no changes", self.index, self._id)
            return self

        await self.validate()
        body = self.to_dict()
        if self._partial:
            response = await self._backend().update(self.index, self._id, body, version=self._version)
        else:
            response = await self._backend().index(self.index, body, id=self._id)
        self._written(response, body)
        return self

    async def update(self, data: Mapping[str, Any]) -> Self:
        """Merge ``data`` and send the changed fields as a partial update."""
        if not self._id:
            raise MissingIdentifierError("update")

        for name, value in data.items():
            self.set(name, value)

        changes = self.diff()
        if not changes:
            logger.debug("update %s/%s skipped: no changes", self.index, self._id)
            return self

        await self.validate()
        body = self.to_dict()
        partial = {name: body.get(name) for name in changed_fields(changes)}
        response = await self._backend().update(self.index, self._id, partial, version=self._version)
        self._written(response, body)
        return self

    async def remove(self) -> Self:
        """Delete this document from its index."""
        if not self._id:
            raise MissingIdentifierError("remove")

        await self._backend().delete(self.index, self._id)
        return self

    async def populate(self, path: str) -> Self:
        """Replace stored reference ids along ``path`` with fetched documents."""
        from .populate import populate

        await populate(self, path)
        return self

    def _written(self, response: Mapping[str, Any], body: Mapping[str, Any]) -> None:
        self._id = response.get("_id", self._id)
        if response.get("_seq_no") is not None and response.get("_primary_term") is not None:
            self._version = (response["_seq_no"], response["_primary_term"])
        self._original = _freeze(body)

    # Model level

    @classmethod
    def _backend(cls) -> ElasticsearchBackend:
        if cls._connection is None:
            raise RuntimeError(f"No backend configured for {cls.__name__}")
        return cls._connection.backend

    @classmethod
    def _fan_out(cls) -> int:
        """Concurrency for batch operations on documents of this model."""
        if cls._connection is None:
            return DEFAULT_CONCURRENCY
        return cls._connection.settings.concurrency

    @classmethod
    def model(cls, name: str) -> type[Document]:
        """Look up another model registered on the same connection."""
        if cls._connection is None:
            raise RuntimeError(f"No connection configured for {cls.__name__}")
        return cls._connection.model(name)

    @classmethod
    def find(cls, criteria: Mapping[str, Any] | None = None) -> Query[Self]:
        from .query import Query

        return Query(cls, criteria)

    where = find

    @classmethod
    def find_one(cls, criteria: Mapping[str, Any] | None = None) -> Query[Self]:
        from .query import Query

        return Query(cls, criteria, single=True).limit(1)

    @classmethod
    def find_by_id(cls, ids: str | list[str]) -> Query[Self]:
        from .query import Query

        return Query(cls, {"id": ids})

    @classmethod
    def count(cls, criteria: Mapping[str, Any] | None = None) -> Query[Self]:
        from .query import Query

        return Query(cls, criteria).count()

    @classmethod
    async def create(cls, data: Mapping[str, Any] | None = None) -> Self:
        """Construct and save a new document."""
        instance = cls(data)
        await instance.save()
        return instance

    @classmethod
    async def update_matching(
        cls,
        criteria: Mapping[str, Any] | None,
        data: Mapping[str, Any],
        *,
        upsert: bool = False,
        multi: bool = False,
    ) -> ResultSet[Self]:
        """Apply ``update(data)`` to the first (or, with ``multi``, every) match.

        With ``upsert`` a document is created from ``data`` when nothing
        matches.
        """
        from .results import ResultSet

        query = cls.find(criteria) if multi else cls.find_one(criteria)
        results = await query.exec()
        if not isinstance(results, ResultSet):
            results = ResultSet.of(cls, [] if results is None else [results])

        if len(results) == 0:
            if upsert:
                return ResultSet.of(cls, [await cls.create(data)])
            return results

        await results.update(data)
        return results

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self._id!r}, {self._current!r})"
