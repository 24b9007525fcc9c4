"""
Admin Routes
============

Operator endpoints for the read guards:

- GET    /admin/circuit-breaker  breaker snapshot with remaining cooldown
- GET    /admin/cache/stats      TTL cache entry counts
- DELETE /admin/cache            drop cached reads (optionally by key prefix)

SECURITY CONSIDERATIONS:
------------------------
In production these endpoints belong behind authentication or on an
internal port. They change no breaker state: the breaker only closes on
its own once the cooldown has elapsed.
"""

import structlog
from fastapi import APIRouter, Query

from src.application.api.dependencies import BreakerDep, CacheDep
from src.application.api.models.admin import (
    CacheInvalidationResponse,
    CacheStatsResponse,
    CircuitBreakerStatusResponse,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/circuit-breaker", response_model=CircuitBreakerStatusResponse)
async def get_circuit_breaker(breaker: BreakerDep):
    """Current breaker state, as rendered by the client-side alert banner."""
    state = breaker.get_state()
    return CircuitBreakerStatusResponse(
        **state.to_dict(),
        remaining_cooldown=breaker.get_remaining_cooldown_time(),
    )


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def get_cache_stats(cache: CacheDep):
    return CacheStatsResponse(**cache.get_stats())


@router.delete("/cache", response_model=CacheInvalidationResponse)
async def invalidate_cache(
    cache: CacheDep,
    prefix: str | None = Query(None, description="Only drop keys starting with this prefix"),
):
    """Drop cached reads. Without ``prefix`` the whole cache is cleared."""
    if prefix:
        removed = cache.invalidate_by_prefix(prefix)
    else:
        removed = len(cache)
        cache.clear()

    logger.info("Cache invalidated via admin API", stage="CACHE.3", prefix=prefix, removed=removed)
    return CacheInvalidationResponse(prefix=prefix, removed=removed)
