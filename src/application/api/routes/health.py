"""
Health Check Routes
===================

Liveness endpoint for load balancers plus a summary of the guard state:

- circuit breaker: open/closed and reason
- cache: entry counts
- realtime: whether the presence backend is connected

The endpoint always answers 200 while the process is alive. A tripped
breaker or a lost realtime connection reports ``degraded``: the guard
layer is designed to keep serving in both cases.
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from src.application.api.dependencies import ServicesDep

router = APIRouter(prefix="/health", tags=["Health"])


class HealthResponse(BaseModel):
    status: str  # "healthy" or "degraded"
    timestamp: str  # ISO 8601
    components: dict | None = None


@router.get("", response_model=HealthResponse)
async def health_check(services: ServicesDep):
    """Quick health check with component summary."""
    breaker_state = services.breaker.get_state()
    realtime_connected = services.realtime_connected()

    status = "healthy"
    if breaker_state.is_open or not realtime_connected:
        status = "degraded"

    return HealthResponse(
        status=status,
        timestamp=datetime.now(timezone.utc).isoformat(),
        components={
            "circuit_breaker": {
                "state": breaker_state.state.value,
                "reason": breaker_state.reason,
            },
            "cache": services.cache.get_stats(),
            "realtime": {"connected": realtime_connected},
        },
    )
