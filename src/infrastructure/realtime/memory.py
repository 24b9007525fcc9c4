"""
In-Memory Realtime Service

Process-local implementation of the realtime protocol: one
``InMemoryRealtimeServer`` holds the data and many ``InMemoryRealtimeClient``
connections talk to it. Used by tests and by single-process deployments
(``REALTIME_BACKEND=memory``).

Records live at leaf paths (``presence/alice``). Reading or subscribing to a
parent path (``presence``) yields ``{child_key: record}``.

Ungraceful disconnects are simulated with ``client.drop()``: the server then
performs every deferred write the client armed, exactly like a realtime
backend noticing a dead socket.
"""

import asyncio
import copy
import itertools
import time
from collections.abc import Callable
from typing import Any

from src.core.exceptions import RealtimeConnectionError
from src.core.interfaces.realtime import (
    ConnectionCallback,
    SubtreeCallback,
    Unsubscribe,
    resolve_server_values,
)
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


def _normalize(path: str) -> str:
    return path.strip("/")


def _is_under(path: str, parent: str) -> bool:
    return path == parent or path.startswith(parent + "/")


class InMemoryRealtimeServer:
    """Shared state and fan-out for all in-memory clients."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._records: dict[str, dict[str, Any]] = {}
        self._subscriptions: dict[int, tuple[str, SubtreeCallback]] = {}
        self._ids = itertools.count(1)
        self._reads_open = asyncio.Event()
        self._reads_open.set()

    def now(self) -> float:
        return self._clock()

    def client(self) -> "InMemoryRealtimeClient":
        """Open a new connection to this server."""
        return InMemoryRealtimeClient(self)

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    async def write(self, path: str, value: dict[str, Any]) -> None:
        path = _normalize(path)
        self._records[path] = resolve_server_values(value, self.now())
        await self._fan_out(path)

    async def read(self, path: str) -> dict[str, Any]:
        await self._reads_open.wait()
        return self.snapshot(path)

    def snapshot(self, path: str) -> dict[str, Any]:
        path = _normalize(path)
        if path in self._records:
            return copy.deepcopy(self._records[path])
        prefix = path + "/" if path else ""
        subtree: dict[str, Any] = {}
        for key, record in self._records.items():
            if key.startswith(prefix):
                child = key[len(prefix):].split("/", 1)[0]
                subtree[child] = copy.deepcopy(record)
        return subtree

    # ------------------------------------------------------------------
    # Test controls
    # ------------------------------------------------------------------

    def pause_reads(self) -> None:
        """Make one-shot reads hang until ``resume_reads()``."""
        self._reads_open.clear()

    def resume_reads(self) -> None:
        self._reads_open.set()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def add_subscription(self, path: str, callback: SubtreeCallback) -> int:
        sub_id = next(self._ids)
        self._subscriptions[sub_id] = (_normalize(path), callback)
        return sub_id

    def remove_subscription(self, sub_id: int) -> None:
        self._subscriptions.pop(sub_id, None)

    async def _fan_out(self, changed: str) -> None:
        for path, callback in list(self._subscriptions.values()):
            if _is_under(changed, path) or _is_under(path, changed):
                try:
                    await callback(self.snapshot(path))
                except Exception as e:
                    logger.warning("Realtime subscriber failed", stage="RT.3", path=path, error=str(e))


class InMemoryRealtimeClient:
    """One connection to an ``InMemoryRealtimeServer``."""

    def __init__(self, server: InMemoryRealtimeServer):
        self._server = server
        self._connected = True
        self._watchers: dict[int, ConnectionCallback] = {}
        self._subscriptions: set[int] = set()
        self._deferred: dict[str, dict[str, Any]] = {}
        self._ids = itertools.count(1)

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def deferred_writes(self) -> dict[str, dict[str, Any]]:
        return dict(self._deferred)

    async def watch_connection(self, callback: ConnectionCallback) -> Unsubscribe:
        watch_id = next(self._ids)
        self._watchers[watch_id] = callback

        async def unsubscribe() -> None:
            self._watchers.pop(watch_id, None)

        await callback(self._connected)
        return unsubscribe

    async def set(self, path: str, value: dict[str, Any]) -> None:
        self._ensure_connected("set")
        await self._server.write(path, value)

    async def get(self, path: str) -> dict[str, Any]:
        self._ensure_connected("get")
        return await self._server.read(path)

    async def subscribe(self, path: str, callback: SubtreeCallback) -> Unsubscribe:
        sub_id = self._server.add_subscription(path, callback)
        self._subscriptions.add(sub_id)

        async def unsubscribe() -> None:
            self._subscriptions.discard(sub_id)
            self._server.remove_subscription(sub_id)

        await callback(self._server.snapshot(path))
        return unsubscribe

    async def arm_disconnect_write(self, path: str, value: dict[str, Any]) -> None:
        self._ensure_connected("arm_disconnect_write")
        self._deferred[_normalize(path)] = dict(value)

    async def cancel_disconnect_write(self, path: str) -> None:
        self._deferred.pop(_normalize(path), None)

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def drop(self) -> None:
        """Lose the connection ungracefully; the server runs deferred writes."""
        if not self._connected:
            return
        self._connected = False
        deferred, self._deferred = self._deferred, {}
        for path, value in deferred.items():
            await self._server.write(path, value)
        logger.info("Realtime connection dropped", stage="RT.2", deferred_writes=len(deferred))
        await self._notify(False)

    async def reconnect(self) -> None:
        if self._connected:
            return
        self._connected = True
        await self._notify(True)

    async def close(self) -> None:
        """Close the connection; subscriptions end and deferred writes run."""
        for sub_id in list(self._subscriptions):
            self._server.remove_subscription(sub_id)
        self._subscriptions.clear()
        await self.drop()

    async def _notify(self, connected: bool) -> None:
        for callback in list(self._watchers.values()):
            try:
                await callback(connected)
            except Exception as e:
                logger.warning("Connection watcher failed", stage="RT.2", error=str(e))

    def _ensure_connected(self, operation: str) -> None:
        if not self._connected:
            raise RealtimeConnectionError(f"Realtime {operation} failed: not connected")
