"""Reference population.

``populate(document, "comments.author")`` walks the dotted path through the
document's fields and replaces every stored reference id it meets with the
fetched document, in place:

- a list of ids is fetched in one multi-get and replaced element by element;
- a list of sub-documents is walked element by element, a few at a time;
- a single id is fetched and replaced;
- anything else is descended into.

The target model of an id is the ``ref`` declared on its field; without
one, ids are taken to point at the owning document's own model.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from ..base.deferred import each_limit
from ..base.fields import Field
from ..base.schema import embedded_props
from ..errors import NotFoundError
from .document import Document

logger = logging.getLogger("elastic_bridge.populate")


async def populate(document: Document, path: str) -> None:
    segments = [segment for segment in str(path).split(".") if segment]
    await _resolve(type(document), {}, document, segments)


async def fetch_by_ids(model: type[Document], ids: list[str]) -> list[Document]:
    """Fetch documents in ``ids`` order; raise NotFoundError if any is missing."""
    hits = await model._backend().multi_get(model._descriptor.index, ids)
    by_id = {hit["_id"]: hit for hit in hits}

    missing = [doc_id for doc_id in ids if doc_id not in by_id]
    if missing:
        raise NotFoundError(
            f"{model.__name__} not found: {', '.join(missing)}",
            ids=missing,
        )
    return [model.from_hit(by_id[doc_id]) for doc_id in ids]


def _target(owner: type[Document], prop: Field[Any] | None) -> type[Document]:
    if prop is not None and prop.ref:
        return owner.model(prop.ref)
    return owner


async def _resolve(
    owner: type[Document],
    props: Mapping[str, Field[Any]],
    container: Any,
    segments: list[str],
) -> None:
    if not segments:
        return

    if isinstance(container, Document):
        owner = type(container)
        props = container._descriptor.props
        data = container._current
    elif isinstance(container, dict):
        data = container
    else:
        return

    key, remaining = segments[0], segments[1:]
    prop = props.get(key)
    value = data.get(key)

    if isinstance(value, list):
        if value and isinstance(value[0], str):
            target = _target(owner, prop)
            logger.debug("populate %s.%s: fetching %d %s", owner.__name__, key, len(value), target.__name__)
            fetched = await fetch_by_ids(target, value)
            for position, doc in enumerate(fetched):
                value[position] = doc
            sub_props: Mapping[str, Field[Any]] = {}
        else:
            sub_props = embedded_props(prop)

        if remaining:
            await each_limit(
                value,
                owner._fan_out(),
                lambda item: _resolve(owner, sub_props, item, remaining),
            )
        return

    if isinstance(value, str):
        target = _target(owner, prop)
        logger.debug("populate %s.%s: fetching %s %s", owner.__name__, key, target.__name__, value)
        (doc,) = await fetch_by_ids(target, [value])
        data[key] = doc
        await _resolve(target, {}, doc, remaining)
        return

    await _resolve(owner, embedded_props(prop), value, remaining)
