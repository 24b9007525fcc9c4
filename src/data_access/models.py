"""
Data Access Models

Value types shared by the facade and document store implementations.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Literal

import orjson

from src.core.config.constants import DEFAULT_ORDER_BY_FIELD, DEFAULT_PAGE_SIZE

ConstraintOp = Literal["==", "!=", "<", "<=", ">", ">=", "in"]


@dataclass(frozen=True)
class Constraint:
    """A single ``field op value`` filter."""

    field: str
    op: ConstraintOp
    value: Any

    def matches(self, document: dict[str, Any]) -> bool:
        if self.field not in document:
            return False
        actual = document[self.field]
        if self.op == "==":
            return actual == self.value
        if self.op == "!=":
            return actual != self.value
        if self.op == "in":
            return actual in self.value
        if self.op == "<":
            return actual < self.value
        if self.op == "<=":
            return actual <= self.value
        if self.op == ">":
            return actual > self.value
        return actual >= self.value


@dataclass(frozen=True)
class QuerySpec:
    """
    A logical query: collection, constraints, ordering and page size.

    Two specs with equal fields share a cache entry. A spec without a page
    size takes the facade's configured one (``DATA_PAGE_SIZE``).
    """

    collection: str
    constraints: tuple[Constraint, ...] = ()
    order_by: str = DEFAULT_ORDER_BY_FIELD
    descending: bool = True
    page_size: int | None = None

    @property
    def limit(self) -> int:
        return self.page_size if self.page_size is not None else DEFAULT_PAGE_SIZE

    def with_page_size(self, page_size: int) -> "QuerySpec":
        """This spec if it has a page size, otherwise a copy using ``page_size``."""
        if self.page_size is not None:
            return self
        return replace(self, page_size=page_size)

    def cache_key(self) -> str:
        """Stable key, prefixed by the collection so mutations can invalidate it."""
        body = orjson.dumps(
            {
                "where": [[c.field, c.op, c.value] for c in self.constraints],
                "order_by": self.order_by,
                "descending": self.descending,
                "limit": self.limit,
            },
            option=orjson.OPT_SORT_KEYS,
            default=str,
        )
        return f"{self.collection}:{body.decode()}"


@dataclass
class DocumentPage:
    """One page returned by a document store."""

    documents: list[dict[str, Any]]
    cursor: Any | None = None
    from_cache: bool = False


@dataclass
class PaginationState:
    has_more: bool = False
    cursor: Any | None = None
    current_page: int = 0


@dataclass
class QueryResult:
    """Items visible to the consumer after a load."""

    items: list[dict[str, Any]] = field(default_factory=list)
    pagination: PaginationState = field(default_factory=PaginationState)
    from_cache: bool = False
    stale: bool = False
