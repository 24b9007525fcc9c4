"""
Unit Tests for DataAccessFacade and PaginatedQuery

Tests the cache-then-breaker read path, quota error absorption, the read
deadline under both failure policies, pagination and mutation
invalidation.
"""

import asyncio

import pytest

from src.core.config.constants import FailurePolicy
from src.core.exceptions import (
    CircuitOpenError,
    OperationTimeoutError,
    QuotaExceededError,
    SystemBusyError,
    TransientIOError,
)
from src.core.resilience.circuit_breaker import CircuitBreakerConfig, RequestCircuitBreaker
from src.data_access import DataAccessFacade, QuerySpec
from src.data_access.facade import is_quota_error
from src.infrastructure.store import InMemoryDocumentStore

CALLS = QuerySpec("calls")


class GatedStore(InMemoryDocumentStore):
    """Store whose reads wait until ``gate`` is set."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.gate = asyncio.Event()
        self.gate.set()

    async def fetch_page(self, spec, cursor=None):
        await self.gate.wait()
        return await super().fetch_page(spec, cursor)


class CodedError(Exception):
    def __init__(self, code):
        super().__init__("backend error")
        self.code = code


def _calls(count):
    return [{"id": f"call-{i:02d}", "createdAt": 1000 + i} for i in range(count)]


@pytest.fixture
def gated_store():
    store = GatedStore()
    store.seed("calls", _calls(20))
    return store


@pytest.fixture
def gated_facade(gated_store, breaker, ttl_cache):
    return DataAccessFacade(gated_store, breaker, ttl_cache, read_timeout=0.05)


@pytest.mark.unit
class TestReadPath:
    @pytest.mark.asyncio
    async def test_first_page_served_from_cache(self, facade, memory_store):
        memory_store.seed("calls", _calls(3))

        first = await facade.fetch_page(CALLS)
        second = await facade.fetch_page(CALLS)

        assert first.from_cache is False
        assert second.from_cache is True
        assert second.documents == first.documents
        assert memory_store.reads == 1

    @pytest.mark.asyncio
    async def test_cache_expires_after_query_ttl(self, facade, memory_store, fake_clock):
        await facade.fetch_page(CALLS)
        fake_clock.advance(120.0)
        await facade.fetch_page(CALLS)

        assert memory_store.reads == 2

    @pytest.mark.asyncio
    async def test_explicit_cache_ttl(self, facade, memory_store, fake_clock):
        await facade.fetch_page(CALLS, cache_ttl=300.0)
        fake_clock.advance(200.0)
        await facade.fetch_page(CALLS, cache_ttl=300.0)

        assert memory_store.reads == 1

    @pytest.mark.asyncio
    async def test_cache_bypass(self, facade, memory_store, ttl_cache):
        await facade.fetch_page(CALLS, use_cache=False)
        await facade.fetch_page(CALLS, use_cache=False)

        assert memory_store.reads == 2
        assert len(ttl_cache) == 0

    @pytest.mark.asyncio
    async def test_later_pages_never_cached(self, facade, memory_store, ttl_cache):
        memory_store.seed("calls", _calls(20))
        first = await facade.fetch_page(CALLS)

        await facade.fetch_page(CALLS, cursor=first.cursor)
        await facade.fetch_page(CALLS, cursor=first.cursor)

        assert memory_store.reads == 3
        assert len(ttl_cache) == 1

    @pytest.mark.asyncio
    async def test_reads_counted_in_breaker(self, facade, breaker):
        await facade.fetch_page(CALLS)
        await facade.fetch_page(CALLS)
        await facade.fetch_page(CALLS, use_cache=False)

        assert breaker.get_state().request_count_in_window == 2


@pytest.mark.unit
class TestBreakerIntegration:
    @pytest.mark.asyncio
    async def test_open_breaker_blocks_without_reading(self, memory_store, ttl_cache, fake_clock):
        breaker = RequestCircuitBreaker(CircuitBreakerConfig(max_requests_per_minute=2), clock=fake_clock)
        facade = DataAccessFacade(memory_store, breaker, ttl_cache)

        await facade.fetch_page(CALLS, use_cache=False)
        await facade.fetch_page(CALLS, use_cache=False)
        fake_clock.advance(15.0)
        with pytest.raises(CircuitOpenError) as exc_info:
            await facade.fetch_page(CALLS, use_cache=False)

        assert memory_store.reads == 2
        assert exc_info.value.remaining_cooldown == pytest.approx(60.0)

    @pytest.mark.asyncio
    async def test_cache_hit_served_while_breaker_open(self, facade, breaker):
        await facade.fetch_page(CALLS)
        for _ in range(3):
            breaker.record_quota_error()

        page = await facade.fetch_page(CALLS)

        assert page.from_cache is True

    @pytest.mark.asyncio
    async def test_quota_error_becomes_system_busy(self, facade, memory_store, breaker):
        memory_store.fail_next(QuotaExceededError("Quota exceeded for document reads"))

        with pytest.raises(SystemBusyError) as exc_info:
            await facade.fetch_page(CALLS)

        assert "Read limit reached" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, QuotaExceededError)
        assert breaker.get_state().quota_error_count == 1

    @pytest.mark.asyncio
    async def test_repeated_quota_errors_open_breaker(self, facade, memory_store, breaker):
        for _ in range(3):
            memory_store.fail_next(CodedError("resource-exhausted"))
            with pytest.raises(SystemBusyError):
                await facade.fetch_page(CALLS)

        assert breaker.is_open is True
        with pytest.raises(CircuitOpenError):
            await facade.fetch_page(CALLS)

    @pytest.mark.asyncio
    async def test_success_decrements_quota_errors(self, facade, memory_store, breaker):
        memory_store.fail_next(QuotaExceededError("quota"))
        with pytest.raises(SystemBusyError):
            await facade.fetch_page(CALLS)

        await facade.fetch_page(CALLS)

        assert breaker.get_state().quota_error_count == 0

    @pytest.mark.asyncio
    async def test_other_errors_propagate_unchanged(self, facade, memory_store, breaker):
        error = ConnectionError("network down")
        memory_store.fail_next(error)

        with pytest.raises(ConnectionError) as exc_info:
            await facade.fetch_page(CALLS)

        assert exc_info.value is error
        assert breaker.get_state().quota_error_count == 0

    @pytest.mark.asyncio
    async def test_transient_io_error_passes_through(self, facade, memory_store, breaker):
        memory_store.available = False

        with pytest.raises(TransientIOError) as exc_info:
            await facade.fetch_page(CALLS)

        assert not isinstance(exc_info.value, SystemBusyError)
        assert breaker.get_state().quota_error_count == 0
        assert breaker.is_open is False

    @pytest.mark.asyncio
    async def test_transient_io_error_recorded_on_query(self, facade, memory_store):
        query = facade.open_query(CALLS)
        memory_store.fail_next()

        with pytest.raises(TransientIOError):
            await query.load()

        assert isinstance(query.error, TransientIOError)

    @pytest.mark.parametrize(
        "error,expected",
        [
            (QuotaExceededError("x"), True),
            (CodedError("resource-exhausted"), True),
            (RuntimeError("Quota exceeded for project"), True),
            (CodedError("unavailable"), False),
            (ConnectionError("reset"), False),
        ],
    )
    def test_is_quota_error(self, error, expected):
        assert is_quota_error(error) is expected


@pytest.mark.unit
class TestReadDeadline:
    @pytest.mark.asyncio
    async def test_slow_read_raises_timeout(self, gated_facade, gated_store):
        gated_store.gate.clear()
        try:
            with pytest.raises(OperationTimeoutError):
                await gated_facade.fetch_page(CALLS)
        finally:
            gated_store.gate.set()

    @pytest.mark.asyncio
    async def test_closed_policy_records_error(self, gated_facade, gated_store):
        query = gated_facade.open_query(CALLS)
        gated_store.gate.clear()
        try:
            with pytest.raises(OperationTimeoutError):
                await query.load()
        finally:
            gated_store.gate.set()

        assert isinstance(query.error, OperationTimeoutError)
        assert query.loading is False

    @pytest.mark.asyncio
    async def test_open_policy_serves_stale_items(self, gated_store, breaker, ttl_cache):
        facade = DataAccessFacade(
            gated_store, breaker, ttl_cache, read_timeout=0.05, failure_policy=FailurePolicy.OPEN
        )
        query = facade.open_query(CALLS)
        await query.load()

        gated_store.gate.clear()
        try:
            result = await query.refresh()
        finally:
            gated_store.gate.set()

        assert result.stale is True
        assert len(result.items) == 15
        assert query.error is None


@pytest.mark.unit
class TestPaginatedQuery:
    @pytest.mark.asyncio
    async def test_load_and_load_more(self, facade, memory_store):
        memory_store.seed("calls", _calls(20))
        query = facade.open_query(CALLS)

        first = await query.load()
        assert len(first.items) == 15
        assert first.pagination.has_more is True
        assert first.pagination.current_page == 1

        second = await query.load_more()
        assert len(second.items) == 20
        assert second.items[-1]["id"] == "call-00"
        assert second.pagination.has_more is False
        assert second.pagination.current_page == 2

        reads = memory_store.reads
        third = await query.load_more()
        assert memory_store.reads == reads
        assert len(third.items) == 20

    @pytest.mark.asyncio
    async def test_exact_page_reports_more_then_empty_page(self, facade, memory_store):
        memory_store.seed("calls", _calls(15))
        query = facade.open_query(CALLS)

        assert (await query.load()).pagination.has_more is True
        result = await query.load_more()

        assert len(result.items) == 15
        assert result.pagination.has_more is False

    @pytest.mark.asyncio
    async def test_load_more_bypasses_cache(self, facade, memory_store):
        memory_store.seed("calls", _calls(20))
        query = facade.open_query(CALLS)
        await query.load()
        await query.load_more()

        again = facade.open_query(CALLS)
        result = await again.load()
        await again.load_more()

        assert result.from_cache is True
        assert memory_store.reads == 3

    @pytest.mark.asyncio
    async def test_refresh_refetches_first_page(self, facade, memory_store):
        memory_store.seed("calls", _calls(3))
        query = facade.open_query(CALLS)
        await query.load()
        memory_store.seed("calls", [{"id": "call-99", "createdAt": 9999}])

        result = await query.refresh()

        assert memory_store.reads == 2
        assert result.from_cache is False
        assert result.items[0]["id"] == "call-99"

    @pytest.mark.asyncio
    async def test_late_result_dropped_after_close(self, gated_store, breaker, ttl_cache):
        facade = DataAccessFacade(gated_store, breaker, ttl_cache, read_timeout=1.0)
        query = facade.open_query(CALLS)

        gated_store.gate.clear()
        pending = asyncio.create_task(query.load())
        await asyncio.sleep(0)
        query.close()
        gated_store.gate.set()
        result = await pending

        assert result.items == []
        assert query.items == []

    @pytest.mark.asyncio
    async def test_closed_query_does_not_load(self, facade, memory_store):
        query = facade.open_query(CALLS)
        query.close()

        await query.load()

        assert memory_store.reads == 0

    @pytest.mark.asyncio
    async def test_error_cleared_on_success(self, facade, memory_store):
        query = facade.open_query(CALLS)
        memory_store.fail_next(ConnectionError("network down"))
        with pytest.raises(ConnectionError):
            await query.load()
        assert query.error is not None

        await query.load()
        assert query.error is None


@pytest.mark.unit
class TestMutations:
    @pytest.mark.asyncio
    async def test_write_invalidates_collection_queries(self, facade, memory_store, ttl_cache):
        await facade.fetch_page(CALLS)
        await facade.fetch_page(QuerySpec("calls", page_size=5))
        await facade.fetch_page(QuerySpec("drivers"))

        await facade.write_document("calls", "call-new", {"createdAt": 5000})

        assert len(ttl_cache) == 1
        page = await facade.fetch_page(CALLS)
        assert page.from_cache is False
        assert page.documents[0]["id"] == "call-new"

    @pytest.mark.asyncio
    async def test_failed_write_still_invalidates(self, facade, memory_store, ttl_cache):
        await facade.fetch_page(CALLS)
        memory_store.fail_next(ConnectionError("network down"))

        with pytest.raises(ConnectionError):
            await facade.write_document("calls", "x", {"createdAt": 1})

        assert len(ttl_cache) == 0

    @pytest.mark.asyncio
    async def test_quota_error_on_write(self, facade, memory_store, breaker):
        memory_store.fail_next(QuotaExceededError("quota"))

        with pytest.raises(SystemBusyError):
            await facade.write_document("calls", "x", {"createdAt": 1})

        assert breaker.get_state().quota_error_count == 1

    def test_from_settings(self, mock_settings, memory_store, breaker, ttl_cache):
        facade = DataAccessFacade.from_settings(memory_store, breaker, ttl_cache, mock_settings)

        assert facade.read_timeout == 10.0
        assert facade.query_ttl == 120.0
        assert facade.failure_policy is FailurePolicy.CLOSED
        assert facade.page_size == 15


@pytest.mark.unit
class TestPageSize:
    @pytest.mark.asyncio
    async def test_configured_page_size_applies_to_specs_without_one(
        self, mock_settings, memory_store, breaker, ttl_cache
    ):
        mock_settings.data_access.DATA_PAGE_SIZE = 4
        memory_store.seed("calls", _calls(10))
        facade = DataAccessFacade.from_settings(memory_store, breaker, ttl_cache, mock_settings)

        page = await facade.fetch_page(CALLS)
        explicit = await facade.fetch_page(QuerySpec("calls", page_size=2))

        assert len(page.documents) == 4
        assert len(explicit.documents) == 2

    @pytest.mark.asyncio
    async def test_paginated_query_uses_configured_page_size(self, memory_store, breaker, ttl_cache):
        memory_store.seed("calls", _calls(6))
        facade = DataAccessFacade(memory_store, breaker, ttl_cache, page_size=4)
        query = facade.open_query(CALLS)

        first = await query.load()
        assert len(first.items) == 4
        assert first.pagination.has_more is True

        second = await query.load_more()
        assert len(second.items) == 6
        assert second.pagination.has_more is False


@pytest.mark.unit
class TestCachedPageIsolation:
    @pytest.mark.asyncio
    async def test_mutating_returned_documents_leaves_cache_intact(self, facade, memory_store):
        memory_store.seed("calls", _calls(2))

        fresh = await facade.fetch_page(CALLS)
        fresh.documents[0]["status"] = "tampered"
        fresh.documents.clear()

        hit = await facade.fetch_page(CALLS)
        assert hit.from_cache is True
        assert len(hit.documents) == 2
        assert "status" not in hit.documents[0]

        hit.documents[0]["status"] = "tampered"
        again = await facade.fetch_page(CALLS)
        assert "status" not in again.documents[0]

    @pytest.mark.asyncio
    async def test_query_items_do_not_alias_cache(self, facade, memory_store):
        memory_store.seed("calls", _calls(2))
        await facade.open_query(CALLS).load()

        query = facade.open_query(CALLS)
        result = await query.load()
        query.items[0]["createdAt"] = -1
        result.items[1]["createdAt"] = -1

        cached = await facade.fetch_page(CALLS)
        assert all(doc["createdAt"] > 0 for doc in cached.documents)
