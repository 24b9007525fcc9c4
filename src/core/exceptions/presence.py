"""
Presence and Realtime Exceptions

All exceptions related to presence tracking and the realtime service

Author: System Architect
Date: 2025-12-08
"""

from src.core.exceptions.base import QuotaGuardError


class PresenceError(QuotaGuardError):
    """Base exception for presence errors."""
    pass


class PresenceWriteError(PresenceError):
    """
    Raised when a presence record cannot be written or the disconnect write
    cannot be armed.

    Presence is best-effort telemetry: the tracker logs and swallows this,
    it never reaches the caller's primary action.
    """
    pass


class RealtimeError(QuotaGuardError):
    """Base exception for realtime service errors."""
    pass


class RealtimeConnectionError(RealtimeError):
    """
    Raised when the realtime service cannot reach its backend.

    Common causes:
    - Redis server is down
    - Network connectivity issues
    - Client already closed
    """
    pass
