"""
Realtime Module

Implementations of the realtime synchronization protocol:
- InMemoryRealtimeServer / InMemoryRealtimeClient: process-local
- RedisRealtimeService: Redis leases + pub/sub
"""

from .memory import InMemoryRealtimeClient, InMemoryRealtimeServer
from .redis_realtime import RedisRealtimeService

__all__ = [
    "InMemoryRealtimeClient",
    "InMemoryRealtimeServer",
    "RedisRealtimeService",
]
