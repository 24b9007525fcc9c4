"""
Realtime Synchronization Protocol

The presence layer depends on three primitives of a realtime service:

1. A live "am I connected" signal.
2. Subscription to a subtree of records with push updates.
3. A deferred write the service itself performs when this client's
   connection is lost, even ungracefully.

Backends lacking (3) natively emulate it with a lease key plus heartbeat
(see ``src.infrastructure.realtime.redis_realtime``).

Author: System Architect
Date: 2025-12-08
"""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable


class _ServerTimestamp:
    """Placeholder resolved to the service's clock at write time."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()

Unsubscribe = Callable[[], Awaitable[None]]
ConnectionCallback = Callable[[bool], Awaitable[None]]
SubtreeCallback = Callable[[dict[str, Any]], Awaitable[None]]


def resolve_server_values(value: dict[str, Any], now: float) -> dict[str, Any]:
    """Replace every ``SERVER_TIMESTAMP`` in a flat record with ``now``."""
    return {k: (now if v is SERVER_TIMESTAMP else v) for k, v in value.items()}


@runtime_checkable
class RealtimeService(Protocol):
    """
    Protocol for the realtime synchronization primitive.

    Paths are slash-separated (``presence/alice``). A subtree read returns
    a dict of child key to record.

    Implementations:
    - InMemoryRealtimeClient: process-local server, used in tests and dev
    - RedisRealtimeService: Redis-backed, run-on-disconnect via leases
    """

    async def watch_connection(self, callback: ConnectionCallback) -> Unsubscribe:
        """
        Observe the connection state.

        The callback is awaited with the current state immediately and then
        on every transition.
        """
        ...

    async def set(self, path: str, value: dict[str, Any]) -> None:
        """
        Write a record at ``path``.

        Raises:
            RealtimeError: If the write cannot be performed
        """
        ...

    async def get(self, path: str) -> dict[str, Any]:
        """Read the subtree under ``path`` (empty dict if none)."""
        ...

    async def subscribe(self, path: str, callback: SubtreeCallback) -> Unsubscribe:
        """Push the subtree under ``path`` to ``callback``, initial value first."""
        ...

    async def arm_disconnect_write(self, path: str, value: dict[str, Any]) -> None:
        """Queue a write the service performs when this connection drops."""
        ...

    async def cancel_disconnect_write(self, path: str) -> None:
        """Remove a queued disconnect write for ``path``."""
        ...
