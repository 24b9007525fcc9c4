"""
Document Store Protocol

Abstracts the remote, quota-limited document store: ordered collection reads
with limit and cursor pagination, plus single-document writes.

Implementations signal read-quota exhaustion with ``QuotaExceededError`` (or
an error carrying ``code == "resource-exhausted"``) and every other backend
failure (network, unavailable backend, rejected query) with
``TransientIOError``. The data access layer absorbs the first and lets the
second through unchanged.
"""

from typing import Any, Protocol, runtime_checkable

from src.data_access.models import DocumentPage, QuerySpec


@runtime_checkable
class DocumentStore(Protocol):
    """Protocol for document store backends."""

    async def fetch_page(self, spec: QuerySpec, cursor: Any | None = None) -> DocumentPage:
        """
        Read one page of ``spec.collection``.

        Args:
            spec: Collection, constraints, ordering and page size
            cursor: Continuation cursor from the previous page (None = first page)

        Returns:
            DocumentPage: Documents plus the cursor of the last one

        Raises:
            QuotaExceededError: If the read quota is exhausted
            TransientIOError: For any other backend failure
        """
        ...

    async def write(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """
        Create or replace a single document.

        Raises:
            QuotaExceededError: If the quota is exhausted
            TransientIOError: For any other backend failure
        """
        ...
