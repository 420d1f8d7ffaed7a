"""Connection context: engine backend plus model registry.

Example:
    >>> conn = Connection("http://localhost:9200")
    >>> await conn.connect()
    >>> Post = conn.model("Post", Schema({"title": str, "author": Field(str, ref="User")}))
    >>> post = await Post.find_by_id("42").populate("author")
    >>> await conn.disconnect()
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any, Self

from .base.schema import Schema, SchemaDescriptor
from .elastic.backend import ElasticsearchBackend
from .elastic.document import Document
from .errors import UnregisteredModelError
from .settings import BridgeSettings

logger = logging.getLogger("elastic_bridge.connection")


class ModelRegistry:
    """Model classes by name; entries are added once and never removed."""

    def __init__(self) -> None:
        self._models: dict[str, type[Document]] = {}

    def register(self, model: type[Document]) -> None:
        self._models[model._descriptor.name] = model

    def get(self, name: str) -> type[Document]:
        try:
            return self._models[name]
        except KeyError:
            raise UnregisteredModelError(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._models

    def __len__(self) -> int:
        return len(self._models)

    def names(self) -> list[str]:
        return list(self._models)


def compile_model(descriptor: SchemaDescriptor, connection: Connection) -> type[Document]:
    """Build the Document subclass for a compiled schema."""
    namespace: dict[str, Any] = {
        "__module__": __name__,
        "__qualname__": descriptor.name,
        "_descriptor": descriptor,
        "_connection": connection,
    }
    for name, method in descriptor.methods.items():
        namespace[name] = method
    for name, static in descriptor.statics.items():
        namespace[name] = classmethod(static)
    return type(descriptor.name, (Document,), namespace)


class Connection:
    """Explicit context holding the engine backend and the model registry."""

    def __init__(
        self,
        settings: BridgeSettings | str | None = None,
        *,
        backend: ElasticsearchBackend | None = None,
        **client_kwargs: Any,
    ) -> None:
        """
        Args:
            settings: Settings, or the engine URL as a string
            backend: Backend to use instead of building one from settings
            **client_kwargs: Additional arguments passed to AsyncElasticsearch
        """
        if isinstance(settings, str):
            settings = BridgeSettings(url=settings)
        self.settings = settings or BridgeSettings()
        self.backend = backend or ElasticsearchBackend(self.settings, **client_kwargs)
        self.registry = ModelRegistry()

    async def connect(self) -> Self:
        await self.backend.connect()
        return self

    async def disconnect(self) -> None:
        await self.backend.disconnect()

    async def __aenter__(self) -> Self:
        return await self.connect()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.disconnect()

    def model(self, name: str, schema: Schema | None = None) -> type[Document]:
        """Register ``name`` when a schema is given; return the model class.

        A name is compiled once. Passing the schema it was registered with
        again returns the existing model; a different schema is rejected.

        Raises:
            UnregisteredModelError: if no schema is given and ``name`` is unknown
            ValueError: if ``name`` is already registered with a different schema
        """
        if schema is not None:
            descriptor = schema.compile(name)
            if name not in self.registry:
                self.registry.register(compile_model(descriptor, self))
                logger.debug("Registered model %s", name)
            elif self.registry.get(name)._descriptor != descriptor:
                raise ValueError(f"Model {name} is already registered with a different schema")
            else:
                logger.debug("Model %s is already registered", name)

        return self.registry.get(name)
