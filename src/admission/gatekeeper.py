"""
Admission Gatekeeper

Decides whether a new session may start, using the live presence count
against a configured capacity.

Flow (check_access):
    ADM.1  identity in bypass list        → allowed, reason "bypass" (no presence read)
    ADM.2  one-shot presence count        → bounded by the aggregator's deadline
    ADM.3  count < max_concurrent_users   → allowed
           otherwise                      → denied, reason "capacity reached"

Any exception during ADM.2 follows ``failure_policy``:
    OPEN   (default) allowed, reason "presence unavailable", warning logged
    CLOSED           denied,  reason "presence unavailable"

This is a best-effort client-side guard, not a trust boundary.

Author: System Architect
Date: 2025-12-11
"""

from collections.abc import Iterable
from dataclasses import asdict, dataclass

from src.core.config.constants import (
    DEFAULT_MAX_CONCURRENT_USERS,
    REASON_BYPASS,
    REASON_CAPACITY_REACHED,
    REASON_PRESENCE_UNAVAILABLE,
    FailurePolicy,
    PresenceRole,
)
from src.core.config.settings import Settings, get_settings
from src.core.logging.logger import get_logger
from src.presence.aggregator import PresenceAggregator

logger = get_logger(__name__)


@dataclass(frozen=True)
class AdmissionDecision:
    """Outcome of one admission check. Never persisted."""

    allowed: bool
    current_count: int
    max_count: int
    reason: str | None = None

    @property
    def message(self) -> str | None:
        """User-facing text for denials and degraded admissions."""
        if self.reason == REASON_CAPACITY_REACHED:
            return (
                f"Server full. {self.current_count}/{self.max_count} users online. "
                "Please try again shortly."
            )
        if self.reason == REASON_PRESENCE_UNAVAILABLE:
            if self.allowed:
                return "Could not verify the user limit. Access allowed."
            return "Could not verify the user limit. Please try again shortly."
        return None

    def to_dict(self) -> dict:
        return {**asdict(self), "message": self.message}


@dataclass(frozen=True)
class ServerStats:
    current_users: int
    max_users: int
    available_slots: int
    utilization_percent: int
    is_full: bool

    def to_dict(self) -> dict:
        return asdict(self)


class AdmissionGatekeeper:
    """
    Capacity-based login admission.

    Usage:
        gatekeeper = AdmissionGatekeeper(aggregator, max_concurrent_users=50)
        decision = await gatekeeper.check_access("alice@example.com")
        if not decision.allowed:
            show(decision.message)
    """

    def __init__(
        self,
        aggregator: PresenceAggregator,
        max_concurrent_users: int = DEFAULT_MAX_CONCURRENT_USERS,
        bypass_list: Iterable[str] = (),
        failure_policy: FailurePolicy = FailurePolicy.OPEN,
    ):
        self.aggregator = aggregator
        self.max_concurrent_users = max_concurrent_users
        self.bypass_list = frozenset(bypass_list)
        self.failure_policy = FailurePolicy(failure_policy)

    @classmethod
    def from_settings(
        cls, aggregator: PresenceAggregator, settings: Settings | None = None
    ) -> "AdmissionGatekeeper":
        admission = (settings or get_settings()).admission
        return cls(
            aggregator,
            max_concurrent_users=admission.ADMISSION_MAX_CONCURRENT_USERS,
            bypass_list=admission.ADMISSION_BYPASS_LIST,
            failure_policy=admission.ADMISSION_FAILURE_POLICY,
        )

    async def check_access(
        self,
        identity: str,
        role: PresenceRole | str | None = None,
        bypass_list: Iterable[str] | None = None,
    ) -> AdmissionDecision:
        """
        Decide whether ``identity`` may start a session.

        Args:
            identity: Authenticated identity (e.g. e-mail)
            role: Informational, logged only
            bypass_list: Extra bypass identities merged with the configured list

        Returns:
            AdmissionDecision
        """
        # STAGE-ADM.1: Bypass
        bypass = self.bypass_list.union(bypass_list or ())
        if identity in bypass:
            logger.info("Admission bypass", stage="ADM.1", identity=identity)
            return AdmissionDecision(
                allowed=True, current_count=0, max_count=self.max_concurrent_users, reason=REASON_BYPASS
            )

        # STAGE-ADM.2: Presence count
        try:
            current_count = await self.aggregator.current_count()
        except Exception as e:
            allowed = self.failure_policy is FailurePolicy.OPEN
            logger.warning(
                "Presence count unavailable",
                stage="ADM.2",
                identity=identity,
                policy=self.failure_policy.value,
                allowed=allowed,
                error=str(e),
            )
            return AdmissionDecision(
                allowed=allowed,
                current_count=0,
                max_count=self.max_concurrent_users,
                reason=REASON_PRESENCE_UNAVAILABLE,
            )

        # STAGE-ADM.3: Capacity
        if current_count < self.max_concurrent_users:
            return AdmissionDecision(
                allowed=True, current_count=current_count, max_count=self.max_concurrent_users
            )

        logger.info(
            "Admission denied: capacity reached",
            stage="ADM.3",
            identity=identity,
            role=getattr(role, "value", role),
            current_count=current_count,
            max_count=self.max_concurrent_users,
        )
        return AdmissionDecision(
            allowed=False,
            current_count=current_count,
            max_count=self.max_concurrent_users,
            reason=REASON_CAPACITY_REACHED,
        )

    async def server_stats(self) -> ServerStats:
        """Capacity utilisation. Errors from the count propagate."""
        current = await self.aggregator.current_count()
        maximum = self.max_concurrent_users
        return ServerStats(
            current_users=current,
            max_users=maximum,
            available_slots=max(0, maximum - current),
            utilization_percent=round(current / maximum * 100),
            is_full=current >= maximum,
        )
