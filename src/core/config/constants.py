"""
System Constants and Enumerations

This module defines system-wide constants and enumerations used across
the quota guard layer.

Architectural Decision: Centralized constants for maintainability
- Single source of truth for magic numbers
- Type-safe enums for state management
- Easy to update and track changes

Author: System Architect
Date: 2025-12-05
"""

from enum import Enum

# ============================================================================
# Circuit Breaker States
# ============================================================================


class CircuitState(str, Enum):
    """
    Request circuit breaker states.

    CLOSED: Normal operation, reads allowed
    OPEN: Cooling down, reads blocked until the cooldown elapses
    """

    CLOSED = "closed"
    OPEN = "open"


# ============================================================================
# Failure Policies
# ============================================================================


class FailurePolicy(str, Enum):
    """
    What a bounded operation does when its outcome is ambiguous (timeout/error).

    OPEN: Permit the action (availability over strictness)
    CLOSED: Deny / raise (strictness over availability)
    """

    OPEN = "open"
    CLOSED = "closed"


# ============================================================================
# Presence
# ============================================================================


class PresenceRole(str, Enum):
    """Roles that can hold a live session."""

    ADMIN = "admin"
    OPERATOR = "operator"


class PresenceState(str, Enum):
    """
    Per-session presence lifecycle.

    uninitialized -> registering -> online -> (disconnected | closed)
    """

    UNINITIALIZED = "uninitialized"
    REGISTERING = "registering"
    ONLINE = "online"
    DISCONNECTED = "disconnected"
    CLOSED = "closed"


# ============================================================================
# Circuit Breaker Defaults
# ============================================================================

# Requests allowed inside one rate window before the breaker opens
DEFAULT_MAX_REQUESTS_PER_MINUTE = 50

# Seconds the breaker stays open once tripped
DEFAULT_COOLDOWN_PERIOD = 60.0

# Quota errors (without intervening successes) that trip the breaker
DEFAULT_QUOTA_ERROR_THRESHOLD = 3

# Length of the fixed request-rate window (seconds)
DEFAULT_RATE_WINDOW = 60.0

# Background tick period (seconds)
DEFAULT_TICK_INTERVAL = 1.0

REASON_RATE_LIMIT = "request rate limit reached"
REASON_QUOTA_EXCEEDED = "quota exceeded"


# ============================================================================
# Cache Defaults
# ============================================================================

# Generic read cache TTL (5 minutes)
DEFAULT_CACHE_TTL = 300.0

# Simple query cache TTL (2 minutes)
DEFAULT_QUERY_CACHE_TTL = 120.0

# Proactive sweep of expired entries (10 minutes)
DEFAULT_CACHE_CLEANUP_INTERVAL = 600.0


# ============================================================================
# Data Access Defaults
# ============================================================================

DEFAULT_PAGE_SIZE = 15
MAX_PAGE_SIZE = 100

# Bounded read deadline (seconds)
DEFAULT_READ_TIMEOUT = 10.0

DEFAULT_ORDER_BY_FIELD = "createdAt"

# Backend error code that signals read-quota exhaustion
QUOTA_ERROR_CODE = "resource-exhausted"

MESSAGE_SYSTEM_BUSY = (
    "Read limit reached. The system is temporarily limited to save quota. "
    "Please try again in a few minutes."
)


# ============================================================================
# Presence / Admission Defaults
# ============================================================================

DEFAULT_PRESENCE_REGISTRY_PATH = "presence"

# One-shot online count deadline (seconds)
DEFAULT_PRESENCE_COUNT_TIMEOUT = 5.0

# Heartbeat emulation of run-on-disconnect (seconds)
DEFAULT_HEARTBEAT_INTERVAL = 10.0
DEFAULT_LEASE_TTL = 30.0

DEFAULT_MAX_CONCURRENT_USERS = 50

REASON_BYPASS = "bypass"
REASON_CAPACITY_REACHED = "capacity reached"
REASON_PRESENCE_UNAVAILABLE = "presence unavailable"


# ============================================================================
# Redis Key Prefixes (realtime emulation)
# ============================================================================

REDIS_KEY_REALTIME = "rt"
REDIS_KEY_LEASE = "rt:lease"
REDIS_KEY_DEFERRED = "rt:deferred"
REDIS_CHANNEL_CHANGES = "rt:changes"
REDIS_KEY_CONNECTIONS = "rt:connections"
REDIS_KEY_REAPING = "rt:reaping"

# A rejoining connection polls the reaping marker of its old id at this interval
REAPER_WAIT_POLL_INTERVAL = 0.05

# Marker stored in deferred writes, resolved when the write is applied
SERVER_TIMESTAMP_MARKER = "__server_timestamp__"

# Initial connect retry (tenacity)
REDIS_CONNECT_MAX_ATTEMPTS = 3
REDIS_CONNECT_RETRY_BASE_DELAY = 0.5
REDIS_CONNECT_RETRY_MAX_DELAY = 5.0


# ============================================================================
# HTTP Headers
# ============================================================================

HEADER_SESSION_ID = "X-Session-ID"
