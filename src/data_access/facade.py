"""
Data Access Facade

Every read against the quota-limited document store goes through here:

    fetch_page(spec, cursor)
        │
        ├─ DATA.1  first page + caching → TTLCache hit? return it
        ├─ DATA.2  breaker.can_make_request()? no → CircuitOpenError(remaining cooldown)
        ├─ DATA.3  breaker.record_request(); read bounded by read_timeout
        │            success     → record_success(); cache first page
        │            quota error → record_quota_error(); SystemBusyError
        │            other error → propagate unchanged (TransientIOError)
        └─ DATA.4  return page

``PaginatedQuery`` is the consumer-side session on top (load / load_more /
refresh) that applies results only while it is still the active consumer.

No retries happen here. A caller that retries re-enters from the top.

Author: System Architect
Date: 2025-12-10
"""

import copy
from typing import TYPE_CHECKING, Any

from src.core.config.constants import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_QUERY_CACHE_TTL,
    DEFAULT_READ_TIMEOUT,
    QUOTA_ERROR_CODE,
    FailurePolicy,
)
from src.core.config.settings import Settings, get_settings
from src.core.exceptions import (
    CircuitOpenError,
    OperationTimeoutError,
    QuotaExceededError,
    SystemBusyError,
)
from src.core.logging.logger import get_logger
from src.core.resilience.circuit_breaker import RequestCircuitBreaker
from src.core.resilience.timeouts import run_with_timeout
from src.data_access.models import DocumentPage, PaginationState, QueryResult, QuerySpec
from src.infrastructure.cache.ttl_cache import TTLCache

if TYPE_CHECKING:
    from src.core.interfaces.document_store import DocumentStore

logger = get_logger(__name__)


def is_quota_error(exc: BaseException) -> bool:
    """True for backend errors that signal read-quota exhaustion."""
    if isinstance(exc, QuotaExceededError):
        return True
    if getattr(exc, "code", None) == QUOTA_ERROR_CODE:
        return True
    return "quota" in str(exc).lower()


class DataAccessFacade:
    """
    Paginated reads through the TTL cache and the request circuit breaker.

    Breaker and cache are injected so tests can build isolated instances.
    """

    def __init__(
        self,
        store: "DocumentStore",
        breaker: RequestCircuitBreaker,
        cache: TTLCache,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        query_ttl: float = DEFAULT_QUERY_CACHE_TTL,
        failure_policy: FailurePolicy = FailurePolicy.CLOSED,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self.store = store
        self.breaker = breaker
        self.cache = cache
        self.read_timeout = read_timeout
        self.query_ttl = query_ttl
        self.failure_policy = FailurePolicy(failure_policy)
        self.page_size = page_size

    @classmethod
    def from_settings(
        cls,
        store: "DocumentStore",
        breaker: RequestCircuitBreaker,
        cache: TTLCache,
        settings: Settings | None = None,
    ) -> "DataAccessFacade":
        settings = settings or get_settings()
        return cls(
            store,
            breaker,
            cache,
            read_timeout=settings.data_access.DATA_READ_TIMEOUT,
            query_ttl=settings.cache.CACHE_QUERY_TTL,
            failure_policy=settings.data_access.DATA_FAILURE_POLICY,
            page_size=settings.data_access.DATA_PAGE_SIZE,
        )

    async def fetch_page(
        self,
        spec: QuerySpec,
        cursor: Any | None = None,
        use_cache: bool = True,
        cache_ttl: float | None = None,
    ) -> DocumentPage:
        """
        Read one page of ``spec``.

        Only the first page (``cursor is None``) is ever cached. A spec without
        a page size reads ``self.page_size`` documents.

        Raises:
            CircuitOpenError: Breaker open, carries remaining cooldown
            SystemBusyError: Backend reported quota exhaustion
            OperationTimeoutError: Read exceeded ``read_timeout``
        """
        spec = spec.with_page_size(self.page_size)
        first_page = cursor is None
        cache_key = spec.cache_key()

        # STAGE-DATA.1: Cache lookup
        if first_page and use_cache:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return DocumentPage(
                    documents=copy.deepcopy(cached.documents), cursor=cached.cursor, from_cache=True
                )

        # STAGE-DATA.2: Breaker check
        if not self.breaker.can_make_request():
            remaining = self.breaker.get_remaining_cooldown_time()
            logger.info(
                "Read blocked by circuit breaker",
                stage="DATA.2",
                collection=spec.collection,
                remaining_cooldown=remaining,
            )
            raise CircuitOpenError(remaining, details={"collection": spec.collection})

        # STAGE-DATA.3: Bounded read
        self.breaker.record_request()
        try:
            page = await run_with_timeout(
                self.store.fetch_page(spec, cursor),
                self.read_timeout,
                f"read {spec.collection}",
            )
        except OperationTimeoutError:
            logger.warning(
                "Read timed out", stage="DATA.3", collection=spec.collection, timeout=self.read_timeout
            )
            raise
        except Exception as e:
            if is_quota_error(e):
                self.breaker.record_quota_error()
                logger.warning("Backend quota exhausted", stage="DATA.3", collection=spec.collection)
                raise SystemBusyError(details={"collection": spec.collection}) from e
            raise

        self.breaker.record_success()
        if first_page and use_cache:
            self.cache.set(
                cache_key,
                # Own copy: consumers may mutate the documents they receive
                DocumentPage(documents=copy.deepcopy(page.documents), cursor=page.cursor),
                self.query_ttl if cache_ttl is None else cache_ttl,
            )

        logger.debug(
            "Page read", stage="DATA.4", collection=spec.collection, documents=len(page.documents)
        )
        return page

    async def write_document(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Write one document and drop every cached query of its collection."""
        try:
            await run_with_timeout(
                self.store.write(collection, doc_id, data),
                self.read_timeout,
                f"write {collection}/{doc_id}",
            )
        except Exception as e:
            if is_quota_error(e):
                self.breaker.record_quota_error()
                raise SystemBusyError(details={"collection": collection}) from e
            raise
        finally:
            # The write may have landed even if it failed locally.
            self.invalidate_collection(collection)

    def invalidate_collection(self, collection: str) -> int:
        return self.cache.invalidate_by_prefix(f"{collection}:")

    def open_query(
        self, spec: QuerySpec, use_cache: bool = True, cache_ttl: float | None = None
    ) -> "PaginatedQuery":
        return PaginatedQuery(
            self, spec.with_page_size(self.page_size), use_cache=use_cache, cache_ttl=cache_ttl
        )


class PaginatedQuery:
    """
    One consumer's view of a paginated query.

    Each load bumps a generation counter. A result that arrives after the
    query was closed, or after a newer load started, is dropped.
    """

    def __init__(
        self,
        facade: DataAccessFacade,
        spec: QuerySpec,
        use_cache: bool = True,
        cache_ttl: float | None = None,
    ):
        self.facade = facade
        self.spec = spec
        self.use_cache = use_cache
        self.cache_ttl = cache_ttl
        self.items: list[dict[str, Any]] = []
        self.pagination = PaginationState()
        self.error: BaseException | None = None
        self.from_cache = False
        self.loading = False
        self.closed = False
        self._generation = 0

    async def load(self) -> QueryResult:
        """Load the first page (cache first)."""
        return await self._load(cursor=None, use_cache=self.use_cache)

    async def load_more(self) -> QueryResult:
        """Append the next page. No-op when there is nothing more."""
        if not self.pagination.has_more or self.pagination.cursor is None:
            return self.result()
        return await self._load(cursor=self.pagination.cursor, use_cache=False)

    async def refresh(self) -> QueryResult:
        """Drop the cached first page and fetch it again."""
        self.facade.cache.invalidate(self.spec.cache_key())
        return await self._load(cursor=None, use_cache=self.use_cache)

    def close(self) -> None:
        self.closed = True
        self._generation += 1

    def result(self, stale: bool = False) -> QueryResult:
        return QueryResult(
            items=list(self.items),
            pagination=PaginationState(
                has_more=self.pagination.has_more,
                cursor=self.pagination.cursor,
                current_page=self.pagination.current_page,
            ),
            from_cache=self.from_cache,
            stale=stale,
        )

    async def _load(self, cursor: Any | None, use_cache: bool) -> QueryResult:
        if self.closed:
            return self.result()

        self._generation += 1
        generation = self._generation
        self.loading = True
        try:
            page = await self.facade.fetch_page(
                self.spec, cursor=cursor, use_cache=use_cache, cache_ttl=self.cache_ttl
            )
        except OperationTimeoutError as e:
            if not self._is_active(generation):
                return self.result()
            self.loading = False
            if self.facade.failure_policy is FailurePolicy.OPEN:
                logger.warning(
                    "Serving previously loaded items after timeout",
                    stage="DATA.5",
                    collection=self.spec.collection,
                    items=len(self.items),
                )
                return self.result(stale=True)
            self.error = e
            raise
        except Exception as e:
            if self._is_active(generation):
                self.loading = False
                self.error = e
            raise

        if not self._is_active(generation):
            logger.debug("Dropping late page", stage="DATA.5", collection=self.spec.collection)
            return self.result()

        if cursor is None:
            self.items = list(page.documents)
            self.pagination.current_page = 1
        else:
            self.items.extend(page.documents)
            self.pagination.current_page += 1
        self.pagination.has_more = len(page.documents) == self.spec.limit
        self.pagination.cursor = page.cursor
        self.from_cache = page.from_cache
        self.error = None
        self.loading = False
        return self.result()

    def _is_active(self, generation: int) -> bool:
        return not self.closed and generation == self._generation
