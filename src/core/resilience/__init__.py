"""
Resilience Module - Core Resilience Components

Guards in front of the quota-limited document store:

COMPONENTS:
===========
- RequestCircuitBreaker: request-rate and quota-error breaker with cooldown
- run_with_timeout: bounded operations that never cancel the underlying I/O

Both are process-local. Instances are constructed explicitly from
configuration and injected where they are used.
"""

from .circuit_breaker import (
    CircuitBreakerConfig,
    CircuitBreakerState,
    RequestCircuitBreaker,
)
from .timeouts import run_with_timeout

__all__ = [
    "CircuitBreakerConfig",
    "CircuitBreakerState",
    "RequestCircuitBreaker",
    "run_with_timeout",
]
