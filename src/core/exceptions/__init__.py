"""
Exception Module

Structured exception hierarchy for the quota guard layer.
All exceptions are organized by theme for better maintainability and debuggability.

Module Structure:
-----------------
- **base.py**: QuotaGuardError base class
- **circuit_breaker.py**: Local throttle exceptions
- **data_access.py**: Document store exceptions (quota, busy, transient I/O)
- **timeout.py**: Bounded operation deadline exceptions
- **presence.py**: Presence and realtime service exceptions

Usage:
------
```python
from src.core.exceptions import CircuitOpenError, QuotaExceededError

from src.core.exceptions.data_access import DataAccessError, SystemBusyError
```

Author: System Architect
Date: 2025-12-08
"""

# Base exception
from src.core.exceptions.base import QuotaGuardError

# Circuit breaker exceptions
from src.core.exceptions.circuit_breaker import CircuitBreakerError, CircuitOpenError

# Data access exceptions
from src.core.exceptions.data_access import (
    DataAccessError,
    QuotaExceededError,
    SystemBusyError,
    TransientIOError,
)

# Presence exceptions
from src.core.exceptions.presence import (
    PresenceError,
    PresenceWriteError,
    RealtimeConnectionError,
    RealtimeError,
)

# Timeout exceptions
from src.core.exceptions.timeout import OperationTimeoutError

__all__ = [
    # Base
    "QuotaGuardError",
    # Circuit Breaker
    "CircuitBreakerError",
    "CircuitOpenError",
    # Data Access
    "DataAccessError",
    "QuotaExceededError",
    "SystemBusyError",
    "TransientIOError",
    # Timeout
    "OperationTimeoutError",
    # Presence
    "PresenceError",
    "PresenceWriteError",
    "RealtimeError",
    "RealtimeConnectionError",
]
