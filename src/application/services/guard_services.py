"""
Guard Services Container

Builds and wires every guard component from settings, replacing
module-level singletons with one explicit object graph:

    realtime ──► PresenceAggregator ──► AdmissionGatekeeper
    store ─┬───────────────────────────► DataAccessFacade
    breaker┤                               ▲
    cache ─┘───────────────────────────────┘

The FastAPI lifespan owns one instance (``app.state.services``); tests build
their own with fakes.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from src.admission.gatekeeper import AdmissionGatekeeper
from src.core.config.settings import Settings, get_settings
from src.core.interfaces.document_store import DocumentStore
from src.core.interfaces.realtime import RealtimeService
from src.core.logging.logger import get_logger
from src.core.resilience.circuit_breaker import CircuitBreakerConfig, RequestCircuitBreaker
from src.data_access.facade import DataAccessFacade
from src.infrastructure.cache.ttl_cache import TTLCache
from src.infrastructure.realtime.memory import InMemoryRealtimeServer
from src.infrastructure.realtime.redis_realtime import RedisRealtimeService
from src.infrastructure.store.memory_store import InMemoryDocumentStore
from src.presence.aggregator import PresenceAggregator
from src.presence.tracker import PresenceTracker

logger = get_logger(__name__)


@dataclass
class GuardServices:
    settings: Settings
    realtime: RealtimeService
    store: DocumentStore
    breaker: RequestCircuitBreaker
    cache: TTLCache
    aggregator: PresenceAggregator
    gatekeeper: AdmissionGatekeeper
    facade: DataAccessFacade
    realtime_server: InMemoryRealtimeServer | None = None
    started: bool = field(default=False, init=False)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        store: DocumentStore | None = None,
        realtime: RealtimeService | None = None,
        clock: Callable[[], float] = time.time,
    ) -> "GuardServices":
        """
        Build the object graph.

        Args:
            settings: Defaults to ``get_settings()``
            store: Document store (defaults to an in-memory store)
            realtime: Realtime service (defaults per ``REALTIME_BACKEND``)
            clock: Time source for breaker and cache
        """
        settings = settings or get_settings()

        realtime_server = None
        if realtime is None:
            if settings.presence.REALTIME_BACKEND == "redis":
                realtime = RedisRealtimeService.from_settings(settings)
            else:
                realtime_server = InMemoryRealtimeServer(clock=clock)
                realtime = realtime_server.client()

        store = store if store is not None else InMemoryDocumentStore()
        breaker = RequestCircuitBreaker(CircuitBreakerConfig.from_settings(settings), clock=clock)
        cache = TTLCache.from_settings(settings, clock=clock)
        aggregator = PresenceAggregator.from_settings(realtime, settings)

        return cls(
            settings=settings,
            realtime=realtime,
            store=store,
            breaker=breaker,
            cache=cache,
            aggregator=aggregator,
            gatekeeper=AdmissionGatekeeper.from_settings(aggregator, settings),
            facade=DataAccessFacade.from_settings(store, breaker, cache, settings),
            realtime_server=realtime_server,
        )

    async def start(self) -> None:
        """Connect realtime, start breaker tick, cache sweep and aggregator."""
        if self.started:
            return
        try:
            if isinstance(self.realtime, RedisRealtimeService):
                await self.realtime.connect()
            self.breaker.start()
            self.cache.start_cleanup()
            await self.aggregator.start()
        except Exception as e:
            logger.error("Guard services failed to start", error=str(e))
            await self._shutdown()
            raise
        self.started = True
        logger.info("Guard services started", backend=type(self.realtime).__name__)

    async def stop(self) -> None:
        if not self.started:
            return
        await self._shutdown()
        self.started = False
        logger.info("Guard services stopped")

    async def _shutdown(self) -> None:
        # Every step is a no-op for a component that never started
        await self.aggregator.stop()
        await self.cache.stop_cleanup()
        await self.breaker.stop()
        if isinstance(self.realtime, RedisRealtimeService):
            await self.realtime.close()

    def tracker_for_session(self, realtime: RealtimeService | None = None) -> PresenceTracker:
        """
        Presence tracker for one session.

        With the in-memory backend each session gets its own connection so
        it can drop independently.
        """
        if realtime is None:
            realtime = self.realtime_server.client() if self.realtime_server else self.realtime
        return PresenceTracker(realtime, registry_path=self.settings.presence.PRESENCE_REGISTRY_PATH)

    def realtime_connected(self) -> bool:
        return bool(getattr(self.realtime, "connected", False))
