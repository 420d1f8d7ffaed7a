"""Elasticsearch implementation."""

from .backend import ElasticsearchBackend
from .document import Document
from .query import Query, QueryOptions
from .results import ResultSet
from .translator import ElasticRequestTranslator

__all__ = [
    "Document",
    "ElasticRequestTranslator",
    "ElasticsearchBackend",
    "Query",
    "QueryOptions",
    "ResultSet",
]
