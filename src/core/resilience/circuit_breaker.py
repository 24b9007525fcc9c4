"""
Request Circuit Breaker for the Remote Document Store.

This module implements a process-local breaker that protects a quota-limited,
pay-per-read document store from overload.

MECHANISM OF ACTION:
-------------------
1.  **Request-rate guard**:
    Every read is counted inside a fixed window (default 60s). Once the count
    reaches ``max_requests_per_minute`` the next ``can_make_request()`` call
    opens the breaker instead of allowing the read.

2.  **Quota-error guard**:
    Quota-exhaustion errors reported by the backend are counted. Reaching
    ``quota_error_threshold`` opens the breaker with reason "quota exceeded".
    Every success decrements the counter by one (partial recovery signal).

3.  **State Transitions**:
    - **CLOSED**: Reads allowed (subject to the rate guard).
    - **OPEN**: Reads blocked. ``cooldown_ends_at = now + cooldown_period``.
      Opening an open breaker is a no-op.
    - OPEN -> CLOSED happens only in ``tick()``, exactly once the cooldown has
      elapsed. Closing resets the quota error counter and notifies listeners.

4.  **Background tick** (once per second):
    Resets the request window when it is ``window_seconds`` old and closes
    the breaker when the cooldown is over.

The window is wall-clock aligned to the last reset (not a rolling window):
up to 2x the limit can pass across a window boundary.
"""

import asyncio
import threading
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass

from src.core.config.constants import (
    DEFAULT_COOLDOWN_PERIOD,
    DEFAULT_MAX_REQUESTS_PER_MINUTE,
    DEFAULT_QUOTA_ERROR_THRESHOLD,
    DEFAULT_RATE_WINDOW,
    DEFAULT_TICK_INTERVAL,
    REASON_QUOTA_EXCEEDED,
    REASON_RATE_LIMIT,
    CircuitState,
)
from src.core.config.settings import Settings, get_settings
from src.core.logging.logger import get_logger

logger = get_logger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class CircuitBreakerConfig:
    """Thresholds for one breaker instance."""

    max_requests_per_minute: int = DEFAULT_MAX_REQUESTS_PER_MINUTE
    cooldown_period: float = DEFAULT_COOLDOWN_PERIOD
    quota_error_threshold: int = DEFAULT_QUOTA_ERROR_THRESHOLD
    window_seconds: float = DEFAULT_RATE_WINDOW
    tick_interval: float = DEFAULT_TICK_INTERVAL

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "CircuitBreakerConfig":
        cb = (settings or get_settings()).circuit_breaker
        return cls(
            max_requests_per_minute=cb.CB_MAX_REQUESTS_PER_MINUTE,
            cooldown_period=cb.CB_COOLDOWN_PERIOD,
            quota_error_threshold=cb.CB_QUOTA_ERROR_THRESHOLD,
            window_seconds=cb.CB_WINDOW_SECONDS,
            tick_interval=cb.CB_TICK_INTERVAL,
        )


@dataclass(frozen=True)
class CircuitBreakerState:
    """Immutable snapshot handed to listeners and status endpoints."""

    is_open: bool
    request_count_in_window: int
    quota_error_count: int
    window_started_at: float
    cooldown_ends_at: float | None
    reason: str | None

    @property
    def state(self) -> CircuitState:
        return CircuitState.OPEN if self.is_open else CircuitState.CLOSED

    def to_dict(self) -> dict:
        data = asdict(self)
        data["state"] = self.state.value
        return data


StateListener = Callable[[CircuitBreakerState], None]


class RequestCircuitBreaker:
    """
    Request-rate and quota-error breaker with open/closed state and cooldown.

    One instance per process, constructed explicitly and injected into the
    data access layer so tests can use isolated instances.

    Mutations are guarded by a lock; listeners are notified outside it, in
    transition order.
    """

    def __init__(self, config: CircuitBreakerConfig | None = None, clock: Clock = time.time):
        self.config = config or CircuitBreakerConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._listeners: list[StateListener] = []
        self._tick_task: asyncio.Task | None = None

        self._is_open = False
        self._request_count = 0
        self._quota_error_count = 0
        self._window_started_at = clock()
        self._cooldown_ends_at: float | None = None
        self._reason: str | None = None

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    def can_make_request(self) -> bool:
        """
        Return False while open; trips the breaker when the window is full.

        Logic:
        1. If OPEN -> False.
        2. If request_count_in_window >= max_requests_per_minute -> open, False.
        3. Otherwise -> True.
        """
        with self._lock:
            if self._is_open:
                return False
            if self._request_count < self.config.max_requests_per_minute:
                return True
            snapshot = self._open_locked(REASON_RATE_LIMIT)
        self._notify(snapshot)
        return False

    def record_request(self) -> None:
        """Count a read. Call only after ``can_make_request()`` returned True."""
        with self._lock:
            self._request_count += 1

    def record_quota_error(self) -> None:
        """Count a quota error; opens the breaker at the threshold."""
        snapshot = None
        with self._lock:
            self._quota_error_count += 1
            logger.warning(
                "Quota error recorded",
                stage="CB.2",
                quota_errors=self._quota_error_count,
                threshold=self.config.quota_error_threshold,
            )
            if self._quota_error_count >= self.config.quota_error_threshold:
                snapshot = self._open_locked(REASON_QUOTA_EXCEEDED)
        if snapshot is not None:
            self._notify(snapshot)

    def record_success(self) -> None:
        """Partial recovery: decrement the quota error count, floored at 0."""
        with self._lock:
            self._quota_error_count = max(0, self._quota_error_count - 1)

    def tick(self) -> None:
        """
        Periodic maintenance, normally run once per second by ``start()``.

        - Resets the request window once it is ``window_seconds`` old.
        - Closes the breaker once ``now >= cooldown_ends_at``.
        """
        snapshot = None
        with self._lock:
            now = self._clock()
            if now - self._window_started_at >= self.config.window_seconds:
                self._request_count = 0
                self._window_started_at = now

            if self._is_open and self._cooldown_ends_at is not None and now >= self._cooldown_ends_at:
                self._is_open = False
                self._quota_error_count = 0
                self._cooldown_ends_at = None
                self._reason = None
                snapshot = self._snapshot_locked()
                logger.info("Circuit breaker closed: reads resumed", stage="CB.4")
        if snapshot is not None:
            self._notify(snapshot)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Register a listener for open/close transitions.

        Returns:
            Callable that removes the listener
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def get_remaining_cooldown_time(self) -> float:
        """Seconds until the breaker closes; 0 if closed."""
        with self._lock:
            if not self._is_open or self._cooldown_ends_at is None:
                return 0.0
            return max(0.0, self._cooldown_ends_at - self._clock())

    def get_state(self) -> CircuitBreakerState:
        with self._lock:
            return self._snapshot_locked()

    @property
    def is_open(self) -> bool:
        return self._is_open

    # ------------------------------------------------------------------
    # Background tick
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the once-per-tick_interval maintenance task on the running loop."""
        if self._tick_task is None or self._tick_task.done():
            self._tick_task = asyncio.get_running_loop().create_task(self._run_ticks())
            logger.info(
                "Circuit breaker started",
                stage="CB.0",
                max_requests_per_minute=self.config.max_requests_per_minute,
                cooldown_period=self.config.cooldown_period,
                quota_error_threshold=self.config.quota_error_threshold,
            )

    async def stop(self) -> None:
        if self._tick_task is None:
            return
        self._tick_task.cancel()
        try:
            await self._tick_task
        except asyncio.CancelledError:
            pass
        self._tick_task = None

    async def _run_ticks(self) -> None:
        while True:
            await asyncio.sleep(self.config.tick_interval)
            try:
                self.tick()
            except Exception as e:
                logger.error("Circuit breaker tick failed", stage="CB.ERROR", error=str(e))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _open_locked(self, reason: str) -> CircuitBreakerState | None:
        if self._is_open:
            return None
        self._is_open = True
        self._cooldown_ends_at = self._clock() + self.config.cooldown_period
        self._reason = reason
        logger.warning(
            "Circuit breaker opened",
            stage="CB.3",
            reason=reason,
            cooldown_period=self.config.cooldown_period,
            request_count=self._request_count,
            quota_errors=self._quota_error_count,
        )
        return self._snapshot_locked()

    def _snapshot_locked(self) -> CircuitBreakerState:
        return CircuitBreakerState(
            is_open=self._is_open,
            request_count_in_window=self._request_count,
            quota_error_count=self._quota_error_count,
            window_started_at=self._window_started_at,
            cooldown_ends_at=self._cooldown_ends_at,
            reason=self._reason,
        )

    def _notify(self, state: CircuitBreakerState | None) -> None:
        if state is None:
            return
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.warning("Circuit breaker listener failed", stage="CB.5", error=str(e))
