"""
Redis Realtime Service - Run-on-Disconnect Emulation

Redis has no native "perform this write when my connection drops". This
adapter emulates it with leases:

Architecture:
    RedisRealtimeService (one per process / connection)
        ├── Lease        rt:lease:{connection_id}   (PX = lease_ttl, refreshed by heartbeat)
        ├── Membership   rt:connections             (set of live connection ids)
        ├── Deferred     rt:deferred:{connection_id} (hash: path -> JSON record)
        ├── Records      rt:{parent}                 (hash: leaf -> JSON record)
        └── Changes      rt:changes                  (pub/sub channel, payload = changed path)

Heartbeat (every ``heartbeat_interval`` seconds):
    1. Refresh own lease and membership.
    2. Reap: for every member whose lease has expired, claim it (reaping
       marker SET NX, then SREM), apply its deferred writes, delete them and
       release the marker.

A process that stops heartbeating therefore has its deferred writes applied
by any surviving process within ``lease_ttl + heartbeat_interval``.

If this process finds it was reaped while alive (e.g. a long pause), it
reports a disconnect, rejoins under a fresh connection id once the reaper
of the old id has released its marker, and reports a reconnect. Presence
then re-arms into a deferred hash no reaper has claimed and its online
write lands after the reaper's offline write.

Records are JSON (orjson). ``SERVER_TIMESTAMP`` resolves to Redis ``TIME``.
"""

import asyncio
import itertools
import logging
import uuid
from typing import Any

import orjson
import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from src.core.config.constants import (
    DEFAULT_HEARTBEAT_INTERVAL,
    DEFAULT_LEASE_TTL,
    REDIS_CHANNEL_CHANGES,
    REDIS_CONNECT_MAX_ATTEMPTS,
    REDIS_CONNECT_RETRY_BASE_DELAY,
    REDIS_CONNECT_RETRY_MAX_DELAY,
    REDIS_KEY_CONNECTIONS,
    REDIS_KEY_DEFERRED,
    REDIS_KEY_LEASE,
    REDIS_KEY_REALTIME,
    REDIS_KEY_REAPING,
    REAPER_WAIT_POLL_INTERVAL,
    SERVER_TIMESTAMP_MARKER,
)
from src.core.config.settings import Settings, get_settings
from src.core.exceptions import RealtimeConnectionError, RealtimeError
from src.core.interfaces.realtime import (
    SERVER_TIMESTAMP,
    ConnectionCallback,
    SubtreeCallback,
    Unsubscribe,
)
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


def _split(path: str) -> tuple[str, str]:
    path = path.strip("/")
    if "/" not in path:
        raise RealtimeError(f"Record path needs a parent: '{path}'")
    parent, leaf = path.rsplit("/", 1)
    return parent, leaf


def _decode(raw: Any) -> dict[str, Any]:
    return orjson.loads(raw)


class RedisRealtimeService:
    """
    Realtime protocol over Redis with lease-based disconnect writes.

    Usage:
        service = RedisRealtimeService.from_settings()
        await service.connect()
        await service.arm_disconnect_write("presence/alice", {...})
        ...
        await service.close()
    """

    def __init__(
        self,
        client: redis.Redis,
        connection_id: str | None = None,
        heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL,
        lease_ttl: float = DEFAULT_LEASE_TTL,
        connect_attempts: int = REDIS_CONNECT_MAX_ATTEMPTS,
        connect_retry_delay: float = REDIS_CONNECT_RETRY_BASE_DELAY,
    ):
        self._client = client
        self.connection_id = connection_id or uuid.uuid4().hex
        self.heartbeat_interval = heartbeat_interval
        self.lease_ttl = lease_ttl

        self._connected = False
        self._watchers: dict[int, ConnectionCallback] = {}
        self._subscriptions: dict[int, tuple[str, SubtreeCallback]] = {}
        self._ids = itertools.count(1)
        self._heartbeat_task: asyncio.Task | None = None
        self._listener_task: asyncio.Task | None = None
        self._pubsub = None

        self._ping = retry(
            stop=stop_after_attempt(connect_attempts),
            wait=wait_exponential(multiplier=connect_retry_delay, max=REDIS_CONNECT_RETRY_MAX_DELAY)
            + wait_random(0, connect_retry_delay),
            retry=retry_if_exception_type((RedisConnectionError, RedisTimeoutError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )(self._client.ping)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "RedisRealtimeService":
        settings = settings or get_settings()
        client = redis.Redis(
            host=settings.redis.REDIS_HOST,
            port=settings.redis.REDIS_PORT,
            db=settings.redis.REDIS_DB,
            password=settings.redis.REDIS_PASSWORD,
            socket_timeout=settings.redis.REDIS_SOCKET_TIMEOUT,
            socket_connect_timeout=settings.redis.REDIS_SOCKET_CONNECT_TIMEOUT,
            decode_responses=True,
        )
        return cls(
            client,
            heartbeat_interval=settings.presence.PRESENCE_HEARTBEAT_INTERVAL,
            lease_ttl=settings.presence.PRESENCE_LEASE_TTL,
        )

    @property
    def connected(self) -> bool:
        return self._connected

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def connect(self) -> None:
        """
        Verify Redis, take a lease and start the heartbeat.

        STAGE-RT.1: Connection establishment

        Raises:
            RealtimeConnectionError: If Redis is unreachable after retries
        """
        try:
            await self._ping()
            await self._renew_lease()
        except RedisError as e:
            logger.error("Realtime backend unreachable", stage="RT.1", error=str(e))
            raise RealtimeConnectionError(
                f"Failed to connect to realtime backend: {e}",
                details={"connection_id": self.connection_id},
            ) from e

        await self._set_connected(True)
        if self._heartbeat_task is None or self._heartbeat_task.done():
            self._heartbeat_task = asyncio.get_running_loop().create_task(self._run_heartbeat())
        logger.info("Realtime connected", stage="RT.1", connection_id=self.connection_id)

    async def close(self) -> None:
        """Graceful shutdown: run own deferred writes, release the lease."""
        for task in (self._heartbeat_task, self._listener_task):
            if task is not None:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._heartbeat_task = None
        self._listener_task = None

        if self._pubsub is not None:
            await self._pubsub.aclose()
            self._pubsub = None

        try:
            if await self._client.srem(REDIS_KEY_CONNECTIONS, self.connection_id):
                await self._apply_deferred(self.connection_id)
            await self._client.delete(self._lease_key(self.connection_id))
        except RedisError as e:
            logger.warning("Realtime close incomplete", stage="RT.5", error=str(e))

        await self._set_connected(False)

    async def heartbeat(self) -> None:
        """One heartbeat: renew the lease, detect reaping, reap dead peers."""
        try:
            was_member = await self._renew_lease()
            if not was_member:
                if self._connected:
                    logger.warning("Lease was reaped while alive", stage="RT.4", connection_id=self.connection_id)
                    await self._set_connected(False)
                await self._rejoin()
            await self._set_connected(True)
            await self.reap()
        except RedisError as e:
            logger.warning("Realtime heartbeat failed", stage="RT.4", error=str(e))
            await self._set_connected(False)

    async def reap(self) -> int:
        """
        Apply deferred writes of every connection whose lease expired.

        Returns:
            Number of connections reaped
        """
        reaped = 0
        for member in await self._client.smembers(REDIS_KEY_CONNECTIONS):
            if member == self.connection_id:
                continue
            if await self._client.exists(self._lease_key(member)):
                continue
            if not await self.claim(member):
                continue
            try:
                applied = await self._apply_deferred(member)
            finally:
                await self.release(member)
            reaped += 1
            logger.info("Expired connection reaped", stage="RT.4", connection_id=member, deferred_writes=applied)
        return reaped

    async def claim(self, connection_id: str) -> bool:
        """
        Claim a dead connection for reaping. Exactly one reaper wins.

        The marker is taken before the membership is removed, so a connection
        that sees itself reaped can always find the marker of an unfinished
        reap. It expires after ``lease_ttl`` if the reaper dies.
        """
        marker = self._reaping_key(connection_id)
        if not await self._client.set(marker, self.connection_id, nx=True, px=int(self.lease_ttl * 1000)):
            return False
        if await self._client.srem(REDIS_KEY_CONNECTIONS, connection_id):
            return True
        await self._client.delete(marker)
        return False

    async def release(self, connection_id: str) -> None:
        await self._client.delete(self._reaping_key(connection_id))

    # =========================================================================
    # Realtime protocol
    # =========================================================================

    async def watch_connection(self, callback: ConnectionCallback) -> Unsubscribe:
        watch_id = next(self._ids)
        self._watchers[watch_id] = callback

        async def unsubscribe() -> None:
            self._watchers.pop(watch_id, None)

        await callback(self._connected)
        return unsubscribe

    async def set(self, path: str, value: dict[str, Any]) -> None:
        try:
            now = await self._server_time()
            record = {k: (now if v is SERVER_TIMESTAMP else v) for k, v in value.items()}
            await self._write(path, record)
        except RedisError as e:
            raise RealtimeConnectionError(f"Realtime write failed: {e}", details={"path": path}) from e

    async def get(self, path: str) -> dict[str, Any]:
        try:
            path = path.strip("/")
            subtree = await self._client.hgetall(f"{REDIS_KEY_REALTIME}:{path}")
            if subtree:
                return {leaf: _decode(raw) for leaf, raw in subtree.items()}
            if "/" not in path:
                return {}
            parent, leaf = _split(path)
            raw = await self._client.hget(f"{REDIS_KEY_REALTIME}:{parent}", leaf)
            return _decode(raw) if raw is not None else {}
        except RedisError as e:
            raise RealtimeConnectionError(f"Realtime read failed: {e}", details={"path": path}) from e

    async def subscribe(self, path: str, callback: SubtreeCallback) -> Unsubscribe:
        sub_id = next(self._ids)
        self._subscriptions[sub_id] = (path.strip("/"), callback)
        await self._ensure_listener()

        async def unsubscribe() -> None:
            self._subscriptions.pop(sub_id, None)

        await callback(await self.get(path))
        return unsubscribe

    async def arm_disconnect_write(self, path: str, value: dict[str, Any]) -> None:
        stored = {k: (SERVER_TIMESTAMP_MARKER if v is SERVER_TIMESTAMP else v) for k, v in value.items()}
        try:
            await self._client.hset(
                self._deferred_key(self.connection_id), path.strip("/"), orjson.dumps(stored)
            )
        except RedisError as e:
            raise RealtimeConnectionError(f"Failed to arm disconnect write: {e}", details={"path": path}) from e

    async def cancel_disconnect_write(self, path: str) -> None:
        try:
            await self._client.hdel(self._deferred_key(self.connection_id), path.strip("/"))
        except RedisError as e:
            raise RealtimeConnectionError(f"Failed to cancel disconnect write: {e}", details={"path": path}) from e

    # =========================================================================
    # Internals
    # =========================================================================

    @staticmethod
    def _lease_key(connection_id: str) -> str:
        return f"{REDIS_KEY_LEASE}:{connection_id}"

    @staticmethod
    def _deferred_key(connection_id: str) -> str:
        return f"{REDIS_KEY_DEFERRED}:{connection_id}"

    @staticmethod
    def _reaping_key(connection_id: str) -> str:
        return f"{REDIS_KEY_REAPING}:{connection_id}"

    async def _rejoin(self) -> None:
        """Continue under a fresh connection id once the old id is fully reaped."""
        stale = self.connection_id
        self.connection_id = uuid.uuid4().hex
        await self._client.srem(REDIS_KEY_CONNECTIONS, stale)
        await self._client.delete(self._lease_key(stale))
        await self._renew_lease()

        for _ in range(max(1, int(self.lease_ttl / REAPER_WAIT_POLL_INTERVAL))):
            if not await self._client.exists(self._reaping_key(stale)):
                break
            await asyncio.sleep(REAPER_WAIT_POLL_INTERVAL)
        else:
            logger.warning("Reaper of previous connection did not finish", stage="RT.4", connection_id=stale)

        await self._client.delete(self._deferred_key(stale))
        logger.info("Realtime rejoined", stage="RT.4", previous_id=stale, connection_id=self.connection_id)

    async def _renew_lease(self) -> bool:
        """Refresh the lease. Returns True if this connection was still a member."""
        await self._client.set(
            self._lease_key(self.connection_id), "1", px=int(self.lease_ttl * 1000)
        )
        added = await self._client.sadd(REDIS_KEY_CONNECTIONS, self.connection_id)
        return added == 0

    async def _server_time(self) -> float:
        seconds, micros = await self._client.time()
        return seconds + micros / 1_000_000

    async def _write(self, path: str, record: dict[str, Any]) -> None:
        parent, leaf = _split(path)
        await self._client.hset(f"{REDIS_KEY_REALTIME}:{parent}", leaf, orjson.dumps(record))
        await self._client.publish(REDIS_CHANNEL_CHANGES, path.strip("/"))

    async def _apply_deferred(self, connection_id: str) -> int:
        key = self._deferred_key(connection_id)
        writes = await self._client.hgetall(key)
        if writes:
            now = await self._server_time()
            for path, raw in writes.items():
                record = {
                    k: (now if v == SERVER_TIMESTAMP_MARKER else v) for k, v in _decode(raw).items()
                }
                await self._write(path, record)
        await self._client.delete(key)
        return len(writes)

    async def _set_connected(self, connected: bool) -> None:
        if self._connected == connected:
            return
        self._connected = connected
        for callback in list(self._watchers.values()):
            try:
                await callback(connected)
            except Exception as e:
                logger.warning("Connection watcher failed", stage="RT.2", error=str(e))

    async def _run_heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            await self.heartbeat()

    async def _ensure_listener(self) -> None:
        if self._listener_task is not None and not self._listener_task.done():
            return
        self._pubsub = self._client.pubsub()
        await self._pubsub.subscribe(REDIS_CHANNEL_CHANGES)
        self._listener_task = asyncio.get_running_loop().create_task(self._listen())

    async def _listen(self) -> None:
        """
        Fan out change notifications to matching subscriptions.

        STAGE-RT.3: Change propagation
        """
        while True:
            try:
                message = await self._pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
            except RedisError as e:
                logger.warning("Change listener error", stage="RT.3", error=str(e))
                await asyncio.sleep(self.heartbeat_interval)
                continue
            if not message:
                continue
            await self.dispatch_change(message["data"])

    async def dispatch_change(self, changed: str) -> None:
        for path, callback in list(self._subscriptions.values()):
            if changed == path or changed.startswith(path + "/") or path.startswith(changed + "/"):
                try:
                    await callback(await self.get(path))
                except Exception as e:
                    logger.warning("Realtime subscriber failed", stage="RT.3", path=path, error=str(e))
