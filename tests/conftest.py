"""
Pytest Configuration and Shared Test Fixtures

This module provides pytest configuration and reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.
"""

import os
import sys
from unittest.mock import MagicMock

import pytest

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from tests.test_fixtures import FakeClock, FakeRedis  # noqa: E402

# ============================================================================
# Mock Configuration Fixtures
# ============================================================================


@pytest.fixture
def mock_settings():
    """
    Mock application settings for testing.

    Returns a MagicMock with the section attributes the guard reads.
    Values MUST be real numbers/enums: they are compared and validated.
    """
    from src.core.config.constants import FailurePolicy
    from src.core.config.settings import Settings

    settings = MagicMock(spec=Settings)

    # Circuit breaker settings
    settings.circuit_breaker.CB_MAX_REQUESTS_PER_MINUTE = 5
    settings.circuit_breaker.CB_COOLDOWN_PERIOD = 30.0
    settings.circuit_breaker.CB_QUOTA_ERROR_THRESHOLD = 2
    settings.circuit_breaker.CB_WINDOW_SECONDS = 60.0
    settings.circuit_breaker.CB_TICK_INTERVAL = 1.0

    # Cache settings
    settings.cache.CACHE_DEFAULT_TTL = 300.0
    settings.cache.CACHE_QUERY_TTL = 120.0
    settings.cache.CACHE_CLEANUP_INTERVAL = 600.0

    # Data access settings
    settings.data_access.DATA_PAGE_SIZE = 15
    settings.data_access.DATA_READ_TIMEOUT = 10.0
    settings.data_access.DATA_FAILURE_POLICY = FailurePolicy.CLOSED

    # Presence settings
    settings.presence.PRESENCE_REGISTRY_PATH = "presence"
    settings.presence.PRESENCE_COUNT_TIMEOUT = 5.0
    settings.presence.PRESENCE_HEARTBEAT_INTERVAL = 10.0
    settings.presence.PRESENCE_LEASE_TTL = 30.0
    settings.presence.REALTIME_BACKEND = "memory"

    # Admission settings
    settings.admission.ADMISSION_MAX_CONCURRENT_USERS = 3
    settings.admission.ADMISSION_BYPASS_LIST = ["root@example.com"]
    settings.admission.ADMISSION_FAILURE_POLICY = FailurePolicy.OPEN

    # App settings
    settings.app.ENVIRONMENT = "test"
    settings.app.APP_VERSION = "1.0.0-test"
    settings.app.APP_NAME = "Quota Guard Test"

    return settings


# ============================================================================
# Environment-Based Integration Toggles
# ============================================================================


@pytest.fixture(scope="session")
def use_real_redis():
    """Check if real Redis should be used for integration tests."""
    return os.getenv("USE_REAL_REDIS", "0").lower() in ("1", "true", "yes")


# ============================================================================
# Time
# ============================================================================


@pytest.fixture
def fake_clock():
    """Controllable time source injected wherever a ``clock`` is accepted."""
    return FakeClock()


# ============================================================================
# Guard Components
# ============================================================================


@pytest.fixture
def breaker(fake_clock):
    """Isolated breaker with the documented defaults (50/min, 60s, 3 errors)."""
    from src.core.resilience.circuit_breaker import RequestCircuitBreaker

    return RequestCircuitBreaker(clock=fake_clock)


@pytest.fixture
def ttl_cache(fake_clock):
    from src.infrastructure.cache.ttl_cache import TTLCache

    return TTLCache(default_ttl=300.0, clock=fake_clock)


@pytest.fixture
def memory_store():
    from src.infrastructure.store.memory_store import InMemoryDocumentStore

    return InMemoryDocumentStore()


@pytest.fixture
def facade(memory_store, breaker, ttl_cache):
    from src.data_access.facade import DataAccessFacade

    return DataAccessFacade(memory_store, breaker, ttl_cache, read_timeout=0.2)


# ============================================================================
# Realtime Fixtures
# ============================================================================


@pytest.fixture
def realtime_server(fake_clock):
    from src.infrastructure.realtime.memory import InMemoryRealtimeServer

    return InMemoryRealtimeServer(clock=fake_clock)


@pytest.fixture
def realtime_client(realtime_server):
    """One connection to the shared in-memory server."""
    return realtime_server.client()


@pytest.fixture
def in_memory_redis_client(fake_clock):
    """
    In-memory Redis client stub for testing.

    Mimics the Redis operations the realtime adapter uses.
    """
    return FakeRedis(fake_clock)


@pytest.fixture
async def aggregator(realtime_server):
    """Running aggregator on its own in-memory connection."""
    from src.presence.aggregator import PresenceAggregator

    agg = PresenceAggregator(realtime_server.client(), count_timeout=0.1)
    await agg.start()
    yield agg
    await agg.stop()
