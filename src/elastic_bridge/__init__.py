"""
elastic-bridge: Mongoose-style document mapping over Elasticsearch.

Quick Start:
    >>> from elastic_bridge import Connection, Field, Schema
    >>>
    >>> conn = await Connection("http://localhost:9200").connect()
    >>>
    >>> User = conn.model("User", Schema({"name": str}))
    >>> Post = conn.model("Post", Schema({
    ...     "title": Field(str, required=True),
    ...     "author": Field(str, ref="User"),
    ... }))
    >>>
    >>> post = await Post.create({"title": "Hello", "author": "u1"})
    >>> posts = await Post.find({"title": "hello"}).sort({"date": -1}).limit(5)
    >>> post = await Post.find_by_id(post.id).populate("author")
    >>>
    >>> # Deferred calls replay in order on exec()
    >>> post.queue.populate("author").update({"title": "Hi"})
    >>> await post.exec()
"""

__version__ = "0.1.0"

from .base.fields import BoolField, DictField, Field, FloatField, IntField, ListField, StringField
from .base.schema import Schema, Virtual
from .connection import Connection, ModelRegistry
from .elastic.backend import ElasticsearchBackend
from .elastic.document import Document
from .elastic.query import Query
from .elastic.results import ResultSet
from .errors import (
    ConnectionError,
    ElasticBridgeError,
    EngineError,
    MissingIdentifierError,
    NotFoundError,
    UnregisteredModelError,
    ValidationError,
    VersionConflictError,
)
from .settings import BridgeSettings

__all__ = [
    "BoolField",
    "BridgeSettings",
    "Connection",
    "ConnectionError",
    "DictField",
    "Document",
    "ElasticBridgeError",
    "ElasticsearchBackend",
    "EngineError",
    "Field",
    "FloatField",
    "IntField",
    "ListField",
    "MissingIdentifierError",
    "ModelRegistry",
    "NotFoundError",
    "Query",
    "ResultSet",
    "Schema",
    "StringField",
    "UnregisteredModelError",
    "ValidationError",
    "VersionConflictError",
    "Virtual",
]
