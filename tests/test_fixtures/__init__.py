"""
Test Fixtures Package

Shared test utilities and helpers for consistent testing across all modules.
"""

from .clock import FakeClock
from .fake_redis import FakePubSub, FakeRedis
from .presence_factory import PresenceTestFactory

__all__ = ["FakeClock", "FakePubSub", "FakeRedis", "PresenceTestFactory"]
