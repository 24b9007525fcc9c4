"""
Cache Module

Provides the in-process TTL read cache.
"""

from .ttl_cache import CacheEntry, TTLCache

__all__ = [
    "CacheEntry",
    "TTLCache",
]
