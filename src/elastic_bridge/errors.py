"""Error taxonomy for elastic-bridge.

Every public coroutine either returns its result or raises exactly one of
these. Engine-side failures keep the client exception as ``__cause__``.
"""

from __future__ import annotations

from typing import Any


class ElasticBridgeError(Exception):
    """Base class for all elastic-bridge errors."""


class EngineError(ElasticBridgeError):
    """The search engine rejected a request."""

    def __init__(self, message: str, *, status: int | None = None, info: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.info = info


class ConnectionError(EngineError):  # noqa: A001
    """The engine could not be reached."""


class NotFoundError(EngineError):
    """A fetch by id produced no document."""

    def __init__(self, message: str, *, ids: list[str] | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.ids = ids or []


class VersionConflictError(EngineError):
    """An optimistic write collided with a newer version of the document."""


class ValidationError(ElasticBridgeError):
    """A field value does not satisfy its schema declaration."""

    def __init__(self, field: str, message: str | None = None) -> None:
        super().__init__(message or f"Mis-match type: {field}")
        self.field = field


class MissingIdentifierError(ElasticBridgeError):
    """An operation that needs a document id was called on a document without one."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"Cannot {operation}: no ID specified.")
        self.operation = operation


class UnregisteredModelError(ElasticBridgeError):
    """A model name was looked up before it was registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Model not registered: {name}")
        self.name = name


__all__ = [
    "ConnectionError",
    "ElasticBridgeError",
    "EngineError",
    "MissingIdentifierError",
    "NotFoundError",
    "UnregisteredModelError",
    "ValidationError",
    "VersionConflictError",
]
