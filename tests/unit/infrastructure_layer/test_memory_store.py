"""
Unit Tests for InMemoryDocumentStore

Tests ordering, constraints, cursor pagination, the read quota and
injected failures.
"""

import pytest

from src.core.exceptions import QuotaExceededError, TransientIOError
from src.data_access.models import Constraint, QuerySpec


def _calls(count):
    return [
        {"id": f"call-{i:02d}", "createdAt": 1000 + i, "status": "open" if i % 2 else "closed"}
        for i in range(count)
    ]


@pytest.mark.unit
class TestQueries:
    @pytest.mark.asyncio
    async def test_descending_order_by_default(self, memory_store):
        memory_store.seed("calls", _calls(5))

        page = await memory_store.fetch_page(QuerySpec("calls"))

        assert [d["id"] for d in page.documents] == ["call-04", "call-03", "call-02", "call-01", "call-00"]

    @pytest.mark.asyncio
    async def test_ascending_with_constraint(self, memory_store):
        memory_store.seed("calls", _calls(6))
        spec = QuerySpec("calls", constraints=(Constraint("status", "==", "open"),), descending=False)

        page = await memory_store.fetch_page(spec)

        assert [d["id"] for d in page.documents] == ["call-01", "call-03", "call-05"]

    @pytest.mark.asyncio
    async def test_range_and_membership_constraints(self, memory_store):
        memory_store.seed("calls", _calls(6))
        spec = QuerySpec(
            "calls",
            constraints=(
                Constraint("createdAt", ">=", 1002),
                Constraint("id", "in", ["call-02", "call-05", "call-00"]),
            ),
        )

        page = await memory_store.fetch_page(spec)

        assert [d["id"] for d in page.documents] == ["call-05", "call-02"]

    @pytest.mark.asyncio
    async def test_cursor_pagination(self, memory_store):
        memory_store.seed("calls", _calls(7))
        spec = QuerySpec("calls", page_size=3)

        first = await memory_store.fetch_page(spec)
        second = await memory_store.fetch_page(spec, first.cursor)
        third = await memory_store.fetch_page(spec, second.cursor)

        assert [d["id"] for d in first.documents] == ["call-06", "call-05", "call-04"]
        assert [d["id"] for d in second.documents] == ["call-03", "call-02", "call-01"]
        assert [d["id"] for d in third.documents] == ["call-00"]
        assert memory_store.reads == 3

    @pytest.mark.asyncio
    async def test_unknown_collection_is_empty(self, memory_store):
        page = await memory_store.fetch_page(QuerySpec("nothing"))

        assert page.documents == []
        assert page.cursor is None

    @pytest.mark.asyncio
    async def test_write_then_read(self, memory_store):
        await memory_store.write("calls", "new", {"createdAt": 5})

        page = await memory_store.fetch_page(QuerySpec("calls"))

        assert page.documents == [{"createdAt": 5, "id": "new"}]
        assert memory_store.writes == 1


@pytest.mark.unit
class TestFailures:
    @pytest.mark.asyncio
    async def test_read_quota(self):
        from src.infrastructure.store import InMemoryDocumentStore

        store = InMemoryDocumentStore(read_quota=2)
        await store.fetch_page(QuerySpec("calls"))
        await store.fetch_page(QuerySpec("calls"))

        with pytest.raises(QuotaExceededError, match="Quota exceeded"):
            await store.fetch_page(QuerySpec("calls"))

    @pytest.mark.asyncio
    async def test_fail_next(self, memory_store):
        memory_store.fail_next(ConnectionError("network down"))

        with pytest.raises(ConnectionError):
            await memory_store.fetch_page(QuerySpec("calls"))

        page = await memory_store.fetch_page(QuerySpec("calls"))
        assert page.documents == []

    @pytest.mark.asyncio
    async def test_fail_next_defaults_to_transient_io_error(self, memory_store):
        memory_store.fail_next()

        with pytest.raises(TransientIOError):
            await memory_store.write("calls", "x", {"createdAt": 1})

        await memory_store.write("calls", "x", {"createdAt": 1})
        assert memory_store.writes == 1

    @pytest.mark.asyncio
    async def test_unavailable_store_fails_every_call(self, memory_store):
        memory_store.available = False

        with pytest.raises(TransientIOError, match="unavailable"):
            await memory_store.fetch_page(QuerySpec("calls"))
        with pytest.raises(TransientIOError):
            await memory_store.write("calls", "x", {"createdAt": 1})
        assert memory_store.reads == 0


@pytest.mark.unit
class TestQuerySpec:
    def test_equal_specs_share_cache_key(self):
        a = QuerySpec("calls", constraints=(Constraint("status", "==", "open"),))
        b = QuerySpec("calls", constraints=(Constraint("status", "==", "open"),))

        assert a.cache_key() == b.cache_key()
        assert a.cache_key().startswith("calls:")

    def test_different_page_size_changes_key(self):
        assert QuerySpec("calls", page_size=15).cache_key() != QuerySpec("calls", page_size=30).cache_key()

    def test_spec_without_page_size_takes_default(self):
        spec = QuerySpec("calls")

        assert spec.limit == 15
        assert spec.with_page_size(4).page_size == 4
        assert QuerySpec("calls", page_size=2).with_page_size(4).page_size == 2
        assert spec.cache_key() == QuerySpec("calls", page_size=15).cache_key()

    def test_missing_field_never_matches(self):
        assert Constraint("status", "!=", "open").matches({"id": "x"}) is False
