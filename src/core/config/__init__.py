"""
Configuration Module

This module provides centralized, type-safe configuration management
for the quota guard layer.

Components:
-----------
- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: System-wide constants, enums, and defaults

Usage:
------
```python
from src.core.config import get_settings
from src.core.config.constants import CircuitState, FailurePolicy

settings = get_settings()
limit = settings.circuit_breaker.CB_MAX_REQUESTS_PER_MINUTE
policy = settings.admission.ADMISSION_FAILURE_POLICY  # FailurePolicy.OPEN
```

Environment Variables:
---------------------
Configuration is loaded from environment variables or `.env` file:

```bash
# Circuit Breaker
CB_MAX_REQUESTS_PER_MINUTE=50
CB_COOLDOWN_PERIOD=60
CB_QUOTA_ERROR_THRESHOLD=3

# Cache
CACHE_DEFAULT_TTL=300
CACHE_QUERY_TTL=120

# Admission
ADMISSION_MAX_CONCURRENT_USERS=50
ADMISSION_BYPASS_LIST='["ops-lead@example.com"]'
ADMISSION_FAILURE_POLICY=open

# Data access
DATA_PAGE_SIZE=15
DATA_FAILURE_POLICY=closed
```

Testing:
-------
```python
import os
from src.core.config import reload_settings

os.environ["ADMISSION_MAX_CONCURRENT_USERS"] = "5"
settings = reload_settings()
assert settings.admission.ADMISSION_MAX_CONCURRENT_USERS == 5
```

Author: System Architect
Date: 2025-12-05
"""

from src.core.config.constants import (
    DEFAULT_CACHE_TTL,
    DEFAULT_COOLDOWN_PERIOD,
    DEFAULT_MAX_CONCURRENT_USERS,
    DEFAULT_MAX_REQUESTS_PER_MINUTE,
    DEFAULT_PAGE_SIZE,
    DEFAULT_PRESENCE_COUNT_TIMEOUT,
    DEFAULT_QUERY_CACHE_TTL,
    DEFAULT_QUOTA_ERROR_THRESHOLD,
    DEFAULT_READ_TIMEOUT,
    CircuitState,
    FailurePolicy,
    PresenceRole,
    PresenceState,
)
from src.core.config.settings import Settings, get_settings, reload_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "reload_settings",
    # Enums
    "CircuitState",
    "FailurePolicy",
    "PresenceRole",
    "PresenceState",
    # Defaults
    "DEFAULT_MAX_REQUESTS_PER_MINUTE",
    "DEFAULT_COOLDOWN_PERIOD",
    "DEFAULT_QUOTA_ERROR_THRESHOLD",
    "DEFAULT_CACHE_TTL",
    "DEFAULT_QUERY_CACHE_TTL",
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_READ_TIMEOUT",
    "DEFAULT_PRESENCE_COUNT_TIMEOUT",
    "DEFAULT_MAX_CONCURRENT_USERS",
]
