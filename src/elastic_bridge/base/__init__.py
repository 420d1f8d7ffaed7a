"""Backend-independent building blocks: fields, schemas, change tracking, deferred calls."""

from .changes import ChangeRecord, diff
from .deferred import DeferredCall, Deferrable, each_limit
from .fields import BoolField, DictField, Field, FloatField, IntField, ListField, StringField
from .schema import Schema, SchemaDescriptor, Virtual

__all__ = [
    "BoolField",
    "ChangeRecord",
    "DeferredCall",
    "Deferrable",
    "DictField",
    "Field",
    "FloatField",
    "IntField",
    "ListField",
    "Schema",
    "SchemaDescriptor",
    "StringField",
    "Virtual",
    "diff",
    "each_limit",
]
