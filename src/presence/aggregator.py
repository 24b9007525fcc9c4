"""
Presence Aggregator

Subscribes to the whole presence registry and keeps live counts of online
identities by role. Also offers a one-shot, deadline-bounded count for the
admission path.

Failure policy for the one-shot count (``FailurePolicy``):
    OPEN   (default) deadline passed → 0, logged warning
    CLOSED           deadline passed → OperationTimeoutError
"""

from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from src.core.config.constants import (
    DEFAULT_PRESENCE_COUNT_TIMEOUT,
    DEFAULT_PRESENCE_REGISTRY_PATH,
    FailurePolicy,
    PresenceRole,
)
from src.core.config.settings import Settings, get_settings
from src.core.exceptions import OperationTimeoutError
from src.core.interfaces.realtime import RealtimeService, Unsubscribe
from src.core.logging.logger import get_logger
from src.core.resilience.timeouts import run_with_timeout
from src.presence.models import PresenceRecord, PresenceSnapshot

logger = get_logger(__name__)

SnapshotListener = Callable[[PresenceSnapshot], None]


def summarize(registry: Mapping[str, Any] | None) -> PresenceSnapshot:
    """Count online records by role. Malformed records are skipped."""
    records: list[PresenceRecord] = []
    for key, raw in (registry or {}).items():
        try:
            record = PresenceRecord.model_validate(raw)
        except ValidationError as e:
            logger.warning("Skipping malformed presence record", stage="AGG.2", key=key, errors=e.error_count())
            continue
        if record.online:
            records.append(record)

    admins = sum(1 for r in records if r.role is PresenceRole.ADMIN)
    return PresenceSnapshot(
        operators_online=len(records) - admins,
        admins_online=admins,
        total=len(records),
        records=records,
    )


class PresenceAggregator:
    """Live role counts over the presence registry."""

    def __init__(
        self,
        realtime: RealtimeService,
        registry_path: str = DEFAULT_PRESENCE_REGISTRY_PATH,
        count_timeout: float = DEFAULT_PRESENCE_COUNT_TIMEOUT,
        failure_policy: FailurePolicy = FailurePolicy.OPEN,
    ):
        self.realtime = realtime
        self.registry_path = registry_path.strip("/")
        self.count_timeout = count_timeout
        self.failure_policy = FailurePolicy(failure_policy)
        self._snapshot = PresenceSnapshot()
        self._listeners: list[SnapshotListener] = []
        self._unsubscribe: Unsubscribe | None = None

    @classmethod
    def from_settings(cls, realtime: RealtimeService, settings: Settings | None = None) -> "PresenceAggregator":
        settings = settings or get_settings()
        return cls(
            realtime,
            registry_path=settings.presence.PRESENCE_REGISTRY_PATH,
            count_timeout=settings.presence.PRESENCE_COUNT_TIMEOUT,
            failure_policy=settings.admission.ADMISSION_FAILURE_POLICY,
        )

    @property
    def snapshot(self) -> PresenceSnapshot:
        return self._snapshot

    @property
    def running(self) -> bool:
        return self._unsubscribe is not None

    async def start(self) -> None:
        """
        Subscribe to the registry.

        STAGE-AGG.1: Registry subscription
        """
        if self._unsubscribe is not None:
            return
        self._unsubscribe = await self.realtime.subscribe(self.registry_path, self._on_registry_change)
        logger.info("Presence aggregator started", stage="AGG.1", path=self.registry_path)

    async def stop(self) -> None:
        if self._unsubscribe is None:
            return
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        await unsubscribe()

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Receive every new snapshot; the current one is delivered immediately."""
        self._listeners.append(listener)
        listener(self._snapshot)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def current_count(self, timeout: float | None = None) -> int:
        """
        One-shot count of online identities, bounded by ``count_timeout``.

        STAGE-AGG.3: Bounded point read

        Raises:
            OperationTimeoutError: Deadline passed under the CLOSED policy
        """
        deadline = self.count_timeout if timeout is None else timeout
        try:
            registry = await run_with_timeout(
                self.realtime.get(self.registry_path), deadline, "presence count"
            )
        except OperationTimeoutError:
            if self.failure_policy is FailurePolicy.OPEN:
                logger.warning("Presence count timed out, assuming 0", stage="AGG.3", timeout=deadline)
                return 0
            raise
        return summarize(registry).total

    async def _on_registry_change(self, registry: dict[str, Any]) -> None:
        self._snapshot = summarize(registry)
        logger.debug(
            "Presence snapshot updated",
            stage="AGG.2",
            total=self._snapshot.total,
            admins_online=self._snapshot.admins_online,
            operators_online=self._snapshot.operators_online,
        )
        for listener in list(self._listeners):
            try:
                listener(self._snapshot)
            except Exception as e:
                logger.warning("Presence listener failed", stage="AGG.2", error=str(e))
