"""Test configuration and fixtures."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any
from unittest.mock import AsyncMock

import pytest

from elastic_bridge import Connection, Field, ListField, Schema
from elastic_bridge.elastic.backend import ElasticsearchBackend
from elastic_bridge.elastic.document import Document


def _make_hit(
    doc_id: str,
    source: dict[str, Any],
    *,
    index: str = "post",
    seq_no: int | None = 0,
    primary_term: int | None = 1,
) -> dict[str, Any]:
    """Raw hit as the engine returns it."""
    hit: dict[str, Any] = {"_index": index, "_id": doc_id, "_source": source}
    if seq_no is not None:
        hit["_seq_no"] = seq_no
    if primary_term is not None:
        hit["_primary_term"] = primary_term
    return hit


@pytest.fixture
def make_hit() -> Any:
    """Factory for raw engine hits."""
    return _make_hit


# Mock Elasticsearch Fixtures
@pytest.fixture
def mock_backend() -> AsyncMock:
    """Mock backend for unit tests."""
    backend = AsyncMock(spec=ElasticsearchBackend)

    backend.index.return_value = {"_id": "generated-id", "_seq_no": 1, "_primary_term": 1, "result": "created"}
    backend.update.return_value = {"_id": "test_id", "_seq_no": 2, "_primary_term": 1, "result": "updated"}
    backend.delete.return_value = {"_id": "test_id", "result": "deleted"}
    backend.search.return_value = ([], 0)
    backend.multi_get.return_value = []

    return backend


@pytest.fixture
def mock_es_client() -> AsyncMock:
    """Mock AsyncElasticsearch client for backend tests."""
    client = AsyncMock()

    client.index.return_value = {"_id": "test_id", "_seq_no": 0, "_primary_term": 1, "result": "created"}
    client.update.return_value = {"_id": "test_id", "_seq_no": 1, "_primary_term": 1, "result": "updated"}
    client.delete.return_value = {"_id": "test_id", "result": "deleted"}
    client.search.return_value = {"hits": {"total": {"value": 0, "relation": "eq"}, "hits": []}}
    client.mget.return_value = {"docs": []}

    return client


@pytest.fixture
def connection(mock_backend: AsyncMock) -> Connection:
    """Connection wired to the mock backend."""
    return Connection(backend=mock_backend)


# Test Model Fixtures
@pytest.fixture
def user_model(connection: Connection) -> type[Document]:
    return connection.model("User", Schema({"name": str, "email": str}))


@pytest.fixture
def post_model(connection: Connection, user_model: type[Document]) -> type[Document]:
    comment = Schema({"body": str, "author": Field(str, ref="User")})
    return connection.model(
        "Post",
        Schema({
            "title": Field(str, required=True),
            "views": int,
            "author": Field(str, ref="User"),
            "editors": ListField(str, ref="User"),
            "comments": ListField(dict, schema=comment),
            "secret": Field(str, select=False),
        }),
    )


@pytest.fixture
def sample_post_data() -> dict[str, Any]:
    """Sample post data for testing."""
    return {
        "title": "Test Post",
        "views": 0,
        "author": "u1",
    }


# Environment Fixtures
@pytest.fixture(autouse=True)
def mock_environment() -> Generator[None, None, None]:
    """Keep ELASTIC_BRIDGE_* variables of the host out of the tests."""
    import os

    original_env = os.environ.copy()
    for key in list(os.environ):
        if key.startswith("ELASTIC_BRIDGE_"):
            del os.environ[key]

    yield

    os.environ.clear()
    os.environ.update(original_env)


# Pytest Markers
def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as unit test (no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (requires a running engine)"
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Add markers based on file paths."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
