"""
Data Access Module

Paginated, cached, breaker-guarded reads against the document store.
"""

from .models import Constraint, DocumentPage, PaginationState, QueryResult, QuerySpec
from .facade import DataAccessFacade, PaginatedQuery, is_quota_error

__all__ = [
    "Constraint",
    "DataAccessFacade",
    "DocumentPage",
    "PaginatedQuery",
    "PaginationState",
    "QueryResult",
    "QuerySpec",
    "is_quota_error",
]
