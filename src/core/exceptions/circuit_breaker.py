"""
Circuit Breaker Exceptions

All exceptions related to request circuit breaker operations

Author: System Architect
Date: 2025-12-08
"""

import math

from src.core.exceptions.base import QuotaGuardError


class CircuitBreakerError(QuotaGuardError):
    """Base exception for circuit breaker errors."""
    pass


class CircuitOpenError(CircuitBreakerError):
    """
    Raised when the request circuit breaker is open (fail fast).

    The local throttle is in effect: no read is issued and no retry is
    attempted. ``remaining_cooldown`` (seconds) lets the caller render a
    countdown; the breaker closes on its own once the cooldown elapses.

    Common causes:
    - Too many reads inside one rate window
    - Repeated quota-exhaustion errors from the backend
    """

    def __init__(
        self,
        remaining_cooldown: float,
        message: str | None = None,
        session_id: str | None = None,
        details: dict | None = None,
    ):
        self.remaining_cooldown = max(0.0, remaining_cooldown)
        seconds = math.ceil(self.remaining_cooldown)
        super().__init__(
            message or f"System temporarily busy. Try again in {seconds} seconds.",
            session_id=session_id,
            details={"remaining_cooldown": self.remaining_cooldown, **(details or {})},
        )
