from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

from elasticsearch import ApiError, AsyncElasticsearch
from elasticsearch import ConflictError as ESConflictError
from elasticsearch import ConnectionError as ESConnectionError
from elasticsearch import NotFoundError as ESNotFoundError
from elasticsearch import TransportError as ESTransportError

from ..errors import ConnectionError, EngineError, NotFoundError, VersionConflictError
from ..settings import BridgeSettings

logger = logging.getLogger("elastic_bridge.backend")

Version = tuple[int, int]


def _body(response: Any) -> dict[str, Any]:
    """Plain dict body of a client response."""
    body = getattr(response, "body", response)
    return dict(body) if isinstance(body, Mapping) else {}


def hit_total(hits: Mapping[str, Any]) -> int:
    """Normalize ``hits.total`` (an int, or ``{"value": n}``) to an int."""
    total = hits.get("total", 0)
    if isinstance(total, Mapping):
        return int(total.get("value", 0))
    return int(total or 0)


class ElasticsearchBackend:
    """Asynchronous Elasticsearch backend.

    Thin adapter over ``AsyncElasticsearch`` exposing the primitives the
    document layer needs, with engine exceptions translated to
    :mod:`elastic_bridge.errors`. Requests are never retried.
    """

    def __init__(self, settings: BridgeSettings | None = None, **client_kwargs: Any) -> None:
        """Initialize the backend.

        Args:
            settings: Connection settings (defaults to ``BridgeSettings()``)
            **client_kwargs: Additional arguments passed to AsyncElasticsearch
        """
        self.settings = settings or BridgeSettings()
        self.client_kwargs = client_kwargs
        self.client: AsyncElasticsearch | None = None

    @property
    def connected(self) -> bool:
        return self.client is not None

    async def connect(self) -> None:
        """Create the engine client."""
        if self.client is None:
            params = {**self.settings.client_params(), **self.client_kwargs}
            self.client = AsyncElasticsearch(**params)
            logger.info("Connected to %s", self.settings.url)

    async def disconnect(self) -> None:
        """Close the engine client."""
        if self.client is not None:
            await self.client.close()
            self.client = None
            logger.info("Disconnected from %s", self.settings.url)

    async def _get_client(self) -> AsyncElasticsearch:
        if self.client is None:
            await self.connect()
        return self.client  # type: ignore[return-value]

    @contextmanager
    def _translate_errors(self, operation: str, index: str, doc_id: str | None = None) -> Iterator[None]:
        try:
            yield
        except ESConflictError as exc:
            raise VersionConflictError(
                f"Version conflict on {operation} {index}/{doc_id}",
                status=exc.meta.status,
                info=exc.body,
            ) from exc
        except ESNotFoundError as exc:
            raise NotFoundError(
                f"Not found on {operation} {index}/{doc_id}",
                ids=[doc_id] if doc_id else [],
                status=exc.meta.status,
                info=exc.body,
            ) from exc
        except ApiError as exc:
            raise EngineError(
                f"{operation} on {index} failed: {exc.message}",
                status=exc.meta.status,
                info=exc.body,
            ) from exc
        except (ESConnectionError, ESTransportError) as exc:
            raise ConnectionError(f"{operation} on {index} failed: {exc}") from exc

    async def index(
        self,
        index: str,
        body: Mapping[str, Any],
        id: str | None = None,
    ) -> dict[str, Any]:
        """Index (insert or replace) a full document."""
        client = await self._get_client()
        logger.debug("index %s/%s", index, id)
        with self._translate_errors("index", index, id):
            response = await client.index(index=index, id=id, document=dict(body))
        return _body(response)

    async def update(
        self,
        index: str,
        id: str,
        doc: Mapping[str, Any],
        version: Version | None = None,
    ) -> dict[str, Any]:
        """Partially update a document, guarded by its version token when given."""
        client = await self._get_client()
        params: dict[str, Any] = {"index": index, "id": id, "doc": dict(doc)}
        if version is not None:
            params["if_seq_no"], params["if_primary_term"] = version
        logger.debug("update %s/%s version=%s", index, id, version)
        with self._translate_errors("update", index, id):
            response = await client.update(**params)
        return _body(response)

    async def delete(self, index: str, id: str) -> dict[str, Any]:
        """Delete a document by id."""
        client = await self._get_client()
        logger.debug("delete %s/%s", index, id)
        with self._translate_errors("delete", index, id):
            response = await client.delete(index=index, id=id)
        return _body(response)

    async def search(
        self,
        index: str,
        *,
        query: Mapping[str, Any],
        sort: Mapping[str, str] | None = None,
        from_: int = 0,
        size: int = 10,
        source_includes: Sequence[str] | None = None,
        source_excludes: Sequence[str] | None = None,
        track_total_hits: bool | None = None,
    ) -> tuple[list[dict[str, Any]], int]:
        """Run a search; returns ``(hits, total)``."""
        client = await self._get_client()
        params: dict[str, Any] = {
            "index": index,
            "query": dict(query),
            "from_": from_,
            "size": size,
            "seq_no_primary_term": True,
        }
        if sort:
            params["sort"] = [{field: direction} for field, direction in sort.items()]
        if source_includes:
            params["source_includes"] = list(source_includes)
        if source_excludes:
            params["source_excludes"] = list(source_excludes)
        if track_total_hits is not None:
            params["track_total_hits"] = track_total_hits

        logger.debug("search %s query=%s from=%d size=%d", index, query, from_, size)
        with self._translate_errors("search", index):
            response = await client.search(**params)

        hits = _body(response).get("hits", {})
        return list(hits.get("hits", [])), hit_total(hits)

    async def multi_get(
        self,
        index: str,
        ids: Sequence[str],
        *,
        source_includes: Sequence[str] | None = None,
        source_excludes: Sequence[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch documents by id.

        Hits come back in request order; ids the engine did not find are
        left out.
        """
        if not ids:
            return []

        client = await self._get_client()
        params: dict[str, Any] = {"index": index, "ids": list(ids)}
        if source_includes:
            params["source_includes"] = list(source_includes)
        if source_excludes:
            params["source_excludes"] = list(source_excludes)

        logger.debug("mget %s ids=%s", index, ids)
        with self._translate_errors("mget", index):
            response = await client.mget(**params)

        return [doc for doc in _body(response).get("docs", []) if doc.get("found")]
