"""Tests for the query builder."""

from typing import Any
from unittest.mock import AsyncMock

import pytest

from elastic_bridge import BridgeSettings, Connection, Schema
from elastic_bridge.elastic.document import Document
from elastic_bridge.elastic.query import DEFAULT_LIMIT, Query
from elastic_bridge.elastic.results import ResultSet


class TestQueryBuilder:
    """Test chain methods."""

    def test_chain_returns_query(self, post_model: type[Document]) -> None:
        query = post_model.find({"title": "A"})

        assert query.sort({"date": "desc"}).limit(5).skip(10).select("title").lean() is query
        assert query.options.limit == 5
        assert query.options.skip == 10
        assert query.options.fields == "title"
        assert query.options.lean

    def test_default_limit(self, post_model: type[Document]) -> None:
        assert post_model.find().options.limit == DEFAULT_LIMIT

    def test_default_limit_from_settings(self, mock_backend: AsyncMock) -> None:
        connection = Connection(BridgeSettings(default_limit=25), backend=mock_backend)
        Note = connection.model("Note", Schema({"title": str}))

        assert Note.find().options.limit == 25

    def test_sort_string(self, post_model: type[Document]) -> None:
        query = post_model.find().sort("-date title")
        assert query.options.sort == {"date": "desc", "title": "asc"}

    def test_where_merges(self, post_model: type[Document]) -> None:
        query = post_model.where({"title": "A"}).where({"author": "u1"})
        assert query.criteria == {"title": "A", "author": "u1"}

    def test_select_list(self, post_model: type[Document]) -> None:
        assert post_model.find().select(("title", "views")).options.fields == ["title", "views"]

    def test_criteria_are_copied(self, post_model: type[Document]) -> None:
        criteria = {"title": "A"}
        post_model.find(criteria).where({"views": 1})
        assert criteria == {"title": "A"}


class TestSearch:
    """Test search execution."""

    @pytest.mark.asyncio
    async def test_search_request(self, post_model: type[Document], mock_backend: AsyncMock) -> None:
        await post_model.find({"title": "A"}).sort({"date": -1}).skip(20).limit(5)

        mock_backend.search.assert_awaited_once_with(
            "post",
            query={"match": {"title": "A"}},
            sort={"date": "desc"},
            from_=20,
            size=5,
            source_includes=None,
            source_excludes=["secret"],
            track_total_hits=None,
        )

    @pytest.mark.asyncio
    async def test_result_set_in_hit_order(
        self, post_model: type[Document], mock_backend: AsyncMock, make_hit: Any
    ) -> None:
        mock_backend.search.return_value = ([make_hit("b", {"title": "B"}), make_hit("a", {"title": "A"})], 2)

        results = await post_model.find().exec()

        assert isinstance(results, ResultSet)
        assert results.ids == ["b", "a"]
        assert all(isinstance(doc, post_model) for doc in results)
        assert results.to_list() == [{"title": "B"}, {"title": "A"}]

    @pytest.mark.asyncio
    async def test_empty_result_set(self, post_model: type[Document]) -> None:
        results = await post_model.find({"title": "none"})

        assert isinstance(results, ResultSet)
        assert len(results) == 0

    @pytest.mark.asyncio
    async def test_lean_returns_raw_hits(
        self, post_model: type[Document], mock_backend: AsyncMock, make_hit: Any
    ) -> None:
        hits = [make_hit("a", {"title": "A"})]
        mock_backend.search.return_value = (hits, 1)

        assert await post_model.find().lean() == hits

    @pytest.mark.asyncio
    async def test_options_read_when_executed(self, post_model: type[Document], mock_backend: AsyncMock) -> None:
        query = post_model.find().limit(3)
        pending = query.exec()
        query.limit(50)

        await pending

        assert mock_backend.search.await_args.kwargs["size"] == 50

    @pytest.mark.asyncio
    async def test_find_one(self, post_model: type[Document], mock_backend: AsyncMock, make_hit: Any) -> None:
        mock_backend.search.return_value = ([make_hit("a", {"title": "A"})], 4)

        post = await post_model.find_one({"title": "A"})

        assert isinstance(post, post_model)
        assert post.id == "a"
        assert mock_backend.search.await_args.kwargs["size"] == 1

    @pytest.mark.asyncio
    async def test_find_one_no_match(self, post_model: type[Document]) -> None:
        assert await post_model.find_one({"title": "A"}) is None


class TestIdLookup:
    """Test find_by_id."""

    @pytest.mark.asyncio
    async def test_scalar_id(self, post_model: type[Document], mock_backend: AsyncMock, make_hit: Any) -> None:
        mock_backend.multi_get.return_value = [make_hit("42", {"title": "A"})]

        post = await post_model.find_by_id("42")

        assert isinstance(post, post_model)
        assert post.id == "42"
        mock_backend.multi_get.assert_awaited_once_with(
            "post", ["42"], source_includes=None, source_excludes=["secret"],
        )
        mock_backend.search.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_scalar_id_not_found(self, post_model: type[Document]) -> None:
        assert await post_model.find_by_id("missing") is None

    @pytest.mark.asyncio
    async def test_id_list(self, post_model: type[Document], mock_backend: AsyncMock, make_hit: Any) -> None:
        mock_backend.multi_get.return_value = [make_hit("b", {"title": "B"}), make_hit("a", {"title": "A"})]

        results = await post_model.find_by_id(["b", "x", "a"])

        assert isinstance(results, ResultSet)
        assert results.ids == ["b", "a"]
        assert mock_backend.multi_get.await_args.args == ("post", ["b", "x", "a"])

    @pytest.mark.asyncio
    async def test_id_criteria_ignore_other_fields(
        self, post_model: type[Document], mock_backend: AsyncMock
    ) -> None:
        await post_model.find({"id": "42", "title": "A"})

        mock_backend.multi_get.assert_awaited_once()
        mock_backend.search.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_selection_on_id_lookup(self, post_model: type[Document], mock_backend: AsyncMock) -> None:
        await post_model.find_by_id("42").select("title views")

        mock_backend.multi_get.assert_awaited_once_with(
            "post", ["42"], source_includes=["title", "views"], source_excludes=None,
        )


class TestCount:
    """Test count queries."""

    @pytest.mark.asyncio
    async def test_count(self, post_model: type[Document], mock_backend: AsyncMock) -> None:
        mock_backend.search.return_value = ([], 17)

        total = await post_model.count({"title": "A"})

        assert total == 17
        kwargs = mock_backend.search.await_args.kwargs
        assert kwargs["size"] == 0
        assert kwargs["track_total_hits"] is True

    @pytest.mark.asyncio
    async def test_count_ignores_lean_and_populate(
        self, post_model: type[Document], mock_backend: AsyncMock
    ) -> None:
        mock_backend.search.return_value = ([], 3)

        assert await post_model.find().lean().populate("author").count() == 3
        mock_backend.multi_get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_count_by_id(self, post_model: type[Document], mock_backend: AsyncMock, make_hit: Any) -> None:
        mock_backend.multi_get.return_value = [make_hit("a", {"title": "A"})]

        assert await post_model.find_by_id("a").count() == 1


class TestPopulateOption:
    """Test populate() on queries."""

    @pytest.mark.asyncio
    async def test_populate_each_result(
        self, post_model: type[Document], mock_backend: AsyncMock, make_hit: Any
    ) -> None:
        mock_backend.search.return_value = (
            [make_hit("p1", {"title": "A", "author": "u1"}), make_hit("p2", {"title": "B", "author": "u2"})],
            2,
        )

        async def multi_get(index, ids, **kwargs):
            return [make_hit(doc_id, {"name": doc_id.upper()}, index=index) for doc_id in ids]

        mock_backend.multi_get.side_effect = multi_get

        results = await post_model.find().populate("author")

        assert [doc.get("author").get("name") for doc in results] == ["U1", "U2"]
        assert mock_backend.multi_get.await_count == 2
        assert {call.args[0] for call in mock_backend.multi_get.await_args_list} == {"user"}

    @pytest.mark.asyncio
    async def test_lean_with_populate_returns_documents(
        self, post_model: type[Document], mock_backend: AsyncMock, make_hit: Any
    ) -> None:
        mock_backend.search.return_value = ([make_hit("p1", {"title": "A", "author": "u1"})], 1)
        mock_backend.multi_get.return_value = [make_hit("u1", {"name": "Ann"}, index="user")]

        results = await post_model.find().lean().populate("author")

        assert isinstance(results, ResultSet)
        assert results[0].get("author").get("name") == "Ann"


class TestStream:
    """Test stream()."""

    @pytest.mark.asyncio
    async def test_stream_pages(self, post_model: type[Document], mock_backend: AsyncMock, make_hit: Any) -> None:
        pages = {
            0: [make_hit("a", {}), make_hit("b", {})],
            2: [make_hit("c", {})],
            4: [],
        }

        async def search(index, **kwargs):
            return pages[kwargs["from_"]], 3

        mock_backend.search.side_effect = search

        ids = [doc.id async for doc in post_model.find().limit(2).stream()]

        assert ids == ["a", "b", "c"]
        assert [call.kwargs["from_"] for call in mock_backend.search.await_args_list] == [0, 2, 4]

    @pytest.mark.asyncio
    async def test_stream_id_lookup(self, post_model: type[Document], mock_backend: AsyncMock, make_hit: Any) -> None:
        mock_backend.multi_get.return_value = [make_hit("a", {})]

        ids = [doc.id async for doc in post_model.find_by_id("a").stream()]

        assert ids == ["a"]
        mock_backend.multi_get.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stream_count_query(self, post_model: type[Document]) -> None:
        with pytest.raises(ValueError, match="count"):
            async for _ in post_model.count().stream():
                pass

    @pytest.mark.asyncio
    async def test_stream_zero_limit(self, post_model: type[Document]) -> None:
        with pytest.raises(ValueError, match="limit"):
            async for _ in post_model.find().limit(0).stream():
                pass

    @pytest.mark.asyncio
    async def test_stream_leaves_query_untouched(self, post_model: type[Document]) -> None:
        query = post_model.find().skip(4)

        async for _ in query.stream():
            pass

        assert query.options.skip == 4


class TestUpdateMatching:
    """Test the model-level update."""

    @pytest.mark.asyncio
    async def test_updates_first_match(
        self, post_model: type[Document], mock_backend: AsyncMock, make_hit: Any
    ) -> None:
        mock_backend.search.return_value = ([make_hit("a", {"title": "A", "views": 1})], 1)

        results = await post_model.update_matching({"title": "A"}, {"views": 2})

        assert results.ids == ["a"]
        mock_backend.update.assert_awaited_once_with("post", "a", {"views": 2}, version=(0, 1))
        assert mock_backend.search.await_args.kwargs["size"] == 1

    @pytest.mark.asyncio
    async def test_multi(self, post_model: type[Document], mock_backend: AsyncMock, make_hit: Any) -> None:
        mock_backend.search.return_value = ([make_hit("a", {"title": "A", "views": 1}), make_hit("b", {"title": "B", "views": 1})], 2)

        await post_model.update_matching(None, {"views": 2}, multi=True)

        assert mock_backend.update.await_count == 2

    @pytest.mark.asyncio
    async def test_no_match(self, post_model: type[Document], mock_backend: AsyncMock) -> None:
        results = await post_model.update_matching({"title": "A"}, {"views": 2})

        assert len(results) == 0
        mock_backend.update.assert_not_awaited()
        mock_backend.index.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_upsert(self, post_model: type[Document], mock_backend: AsyncMock) -> None:
        results = await post_model.update_matching({"title": "A"}, {"title": "A", "views": 2}, upsert=True)

        assert results.ids == ["generated-id"]
        mock_backend.index.assert_awaited_once()


def test_repr(post_model: type[Document]) -> None:
    assert repr(Query(post_model, {"title": "A"})).startswith("Query(Post, {'title': 'A'}")
