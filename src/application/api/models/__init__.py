"""
API Models Package
==================

Pydantic models for API request/response validation.

ORGANIZATION:
-------------
- admin.py: Breaker and cache endpoint models
- guard.py: Presence and admission endpoint models
"""

from src.application.api.models.admin import (
    CacheInvalidationResponse,
    CacheStatsResponse,
    CircuitBreakerStatusResponse,
)
from src.application.api.models.guard import (
    AdmissionCheckRequest,
    AdmissionCheckResponse,
    OnlineRecordResponse,
    OnlineUsersResponse,
    ServerStatsResponse,
)

__all__ = [
    "AdmissionCheckRequest",
    "AdmissionCheckResponse",
    "CacheInvalidationResponse",
    "CacheStatsResponse",
    "CircuitBreakerStatusResponse",
    "OnlineRecordResponse",
    "OnlineUsersResponse",
    "ServerStatsResponse",
]
