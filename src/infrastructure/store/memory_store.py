"""
In-Memory Document Store

Local stand-in for the remote document store. Supports ordering, equality
and range constraints, cursor pagination and an optional read quota that
raises ``QuotaExceededError`` once spent. Setting ``available = False`` makes
every call fail with ``TransientIOError`` like an unreachable backend.
"""

import asyncio
import copy
from typing import Any

from src.core.exceptions import QuotaExceededError, TransientIOError
from src.core.logging.logger import get_logger
from src.data_access.models import DocumentPage, QuerySpec

logger = get_logger(__name__)


class InMemoryDocumentStore:
    """
    Collections of ``{doc_id: document}``; every document carries its ``id``.

    Args:
        read_quota: Page reads allowed before quota errors (None = unlimited)
        latency: Seconds each read or write sleeps before answering
    """

    def __init__(self, read_quota: int | None = None, latency: float = 0.0):
        self.read_quota = read_quota
        self.latency = latency
        self.reads = 0
        self.writes = 0
        self.available = True
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._pending_errors: list[BaseException] = []

    def seed(self, collection: str, documents: list[dict[str, Any]]) -> None:
        """Load documents directly (no quota, no latency). Each needs an ``id``."""
        docs = self._collections.setdefault(collection, {})
        for document in documents:
            docs[str(document["id"])] = copy.deepcopy(document)

    def fail_next(self, error: BaseException | None = None) -> None:
        """Raise ``error`` (default: a ``TransientIOError``) from the next read or write."""
        if error is None:
            error = TransientIOError("Document store I/O failed")
        self._pending_errors.append(error)

    async def fetch_page(self, spec: QuerySpec, cursor: Any | None = None) -> DocumentPage:
        await self._simulate_io()

        if self.read_quota is not None and self.reads >= self.read_quota:
            raise QuotaExceededError(
                "Quota exceeded for document reads", details={"collection": spec.collection}
            )
        self.reads += 1

        candidates = [
            doc
            for doc in self._collections.get(spec.collection, {}).values()
            if spec.order_by in doc and all(c.matches(doc) for c in spec.constraints)
        ]
        candidates.sort(key=lambda d: (d[spec.order_by], d["id"]), reverse=spec.descending)

        if cursor is not None:
            after = tuple(cursor)
            if spec.descending:
                candidates = [d for d in candidates if (d[spec.order_by], d["id"]) < after]
            else:
                candidates = [d for d in candidates if (d[spec.order_by], d["id"]) > after]

        page = [copy.deepcopy(d) for d in candidates[: spec.limit]]
        next_cursor = (page[-1][spec.order_by], page[-1]["id"]) if page else None
        return DocumentPage(documents=page, cursor=next_cursor)

    async def write(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        await self._simulate_io()
        self.writes += 1
        self._collections.setdefault(collection, {})[doc_id] = {**copy.deepcopy(data), "id": doc_id}

    async def _simulate_io(self) -> None:
        if self.latency:
            await asyncio.sleep(self.latency)
        if not self.available:
            raise TransientIOError("Document store unavailable")
        if self._pending_errors:
            raise self._pending_errors.pop(0)
