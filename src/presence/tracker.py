"""
Presence Tracker

Maintains one ephemeral presence record per active connection.

State machine (per session):

    uninitialized ──start()──► registering ──connected──► online
                                    ▲                       │
                                    └──────connected────────┤ connection lost
                                                            ▼
                                                      disconnected
    any ──stop()──► closed

On every transition to connected, strictly in this order:
    PRES.2  arm the deferred offline write on the connection
    PRES.3  write the online record
Arming first means a drop between the two steps still leaves the record
offline.

Presence is best-effort telemetry: every failure is logged and swallowed,
nothing here ever raises into the caller's primary action.

Author: System Architect
Date: 2025-12-11
"""

from src.core.config.constants import (
    DEFAULT_PRESENCE_REGISTRY_PATH,
    PresenceRole,
    PresenceState,
)
from src.core.exceptions import PresenceWriteError
from src.core.interfaces.realtime import RealtimeService, Unsubscribe
from src.core.logging.logger import get_logger
from src.presence.models import PresenceProfile, offline_payload, online_payload

logger = get_logger(__name__)


class PresenceTracker:
    """
    Registers, refreshes and retracts the presence record of one session.

    Usage:
        tracker = PresenceTracker(realtime)
        await tracker.start("alice", PresenceRole.OPERATOR, PresenceProfile(display_name="Alice"))
        ...
        await tracker.stop()
    """

    def __init__(self, realtime: RealtimeService, registry_path: str = DEFAULT_PRESENCE_REGISTRY_PATH):
        self.realtime = realtime
        self.registry_path = registry_path.strip("/")
        self._state = PresenceState.UNINITIALIZED
        self._identity: str | None = None
        self._role: PresenceRole | None = None
        self._profile = PresenceProfile()
        self._unwatch: Unsubscribe | None = None

    @property
    def state(self) -> PresenceState:
        return self._state

    @property
    def identity(self) -> str | None:
        return self._identity

    @property
    def record_path(self) -> str:
        return f"{self.registry_path}/{self._identity}"

    async def start(
        self,
        identity: str,
        role: PresenceRole | str,
        profile: PresenceProfile | None = None,
    ) -> None:
        """
        Begin tracking ``identity``. No-op if already tracking it.

        STAGE-PRES.1: Connection watch
        """
        if self._identity == identity and self._state is not PresenceState.CLOSED:
            return
        if self._identity is not None and self._state is not PresenceState.CLOSED:
            await self.stop()

        self._identity = identity
        self._role = PresenceRole(role)
        self._profile = profile or PresenceProfile()
        self._state = PresenceState.REGISTERING

        try:
            self._unwatch = await self.realtime.watch_connection(self._on_connection_change)
        except Exception as e:
            logger.error(
                "Presence connection watch failed", stage="PRES.1", identity=identity, error=str(e)
            )
            # Untracked again, so the next start() for this identity retries
            self._identity = None
            self._role = None
            self._state = PresenceState.UNINITIALIZED

    async def stop(self) -> None:
        """
        Stop tracking and write the offline record now.

        STAGE-PRES.5: Graceful teardown
        """
        if self._state in (PresenceState.UNINITIALIZED, PresenceState.CLOSED):
            self._state = PresenceState.CLOSED
            return
        self._state = PresenceState.CLOSED

        if self._unwatch is not None:
            unwatch, self._unwatch = self._unwatch, None
            try:
                await unwatch()
            except Exception as e:
                logger.warning("Presence unwatch failed", stage="PRES.5", error=str(e))

        try:
            await self.realtime.set(self.record_path, self._offline())
            await self.realtime.cancel_disconnect_write(self.record_path)
            logger.info("Presence retracted", stage="PRES.5", identity=self._identity)
        except Exception as e:
            self._log_write_failure(e, "PRES.5", "offline write")

    async def _on_connection_change(self, connected: bool) -> None:
        if self._state is PresenceState.CLOSED:
            return
        if connected:
            await self._register()
        else:
            self._state = PresenceState.DISCONNECTED
            logger.info("Presence connection lost", stage="PRES.4", identity=self._identity)

    async def _register(self) -> None:
        self._state = PresenceState.REGISTERING

        # STAGE-PRES.2: Arm deferred offline write
        try:
            await self.realtime.arm_disconnect_write(self.record_path, self._offline())
        except Exception as e:
            self._log_write_failure(e, "PRES.2", "arm disconnect write")
            return

        if self._state is not PresenceState.REGISTERING:
            return

        # STAGE-PRES.3: Declare online
        try:
            await self.realtime.set(
                self.record_path, online_payload(self._identity, self._role, self._profile)
            )
        except Exception as e:
            self._log_write_failure(e, "PRES.3", "online write")
            return

        if self._state is PresenceState.REGISTERING:
            self._state = PresenceState.ONLINE
            logger.info("Presence online", stage="PRES.3", identity=self._identity, role=self._role.value)

    def _offline(self) -> dict:
        return offline_payload(self._identity, self._role, self._profile)

    def _log_write_failure(self, error: Exception, stage: str, operation: str) -> None:
        failure = PresenceWriteError.from_exception(
            error, message=f"Presence {operation} failed", identity=self._identity
        )
        logger.error(failure.message, stage=stage, **failure.details)
