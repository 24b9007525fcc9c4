"""
Admin API Response Models
=========================

Pydantic models for the operator endpoints: breaker status and cache
maintenance. Every field carries a description for the OpenAPI docs and
bounded values use constraints (``ge=0``) to state their invariants.
"""

from pydantic import BaseModel, Field


class CircuitBreakerStatusResponse(BaseModel):
    """Snapshot of the request circuit breaker."""

    state: str = Field(..., description="'open' or 'closed'")
    is_open: bool = Field(..., description="True while reads are blocked")
    reason: str | None = Field(None, description="Why the breaker opened")
    request_count_in_window: int = Field(..., ge=0, description="Reads counted in the current window")
    quota_error_count: int = Field(..., ge=0, description="Quota errors since last close")
    window_started_at: float = Field(..., description="Epoch seconds of the last window reset")
    cooldown_ends_at: float | None = Field(None, description="Epoch seconds when the breaker closes")
    remaining_cooldown: float = Field(..., ge=0, description="Seconds until reads resume")


class CacheStatsResponse(BaseModel):
    total_entries: int = Field(..., ge=0, description="Entries held, expired or not")
    valid_entries: int = Field(..., ge=0, description="Entries still within their TTL")
    expired_entries: int = Field(..., ge=0, description="Entries awaiting eviction")


class CacheInvalidationResponse(BaseModel):
    prefix: str | None = Field(None, description="Prefix invalidated (None = everything)")
    removed: int = Field(..., ge=0, description="Number of entries removed")
