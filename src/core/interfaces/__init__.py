"""
Core Interfaces Module

Protocols for the external collaborators, enabling dependency injection,
testability, and loose coupling.

Components:
-----------
- **realtime.py**: RealtimeService protocol (connection signal, subtree
  subscription, deferred disconnect writes)
- **document_store.py**: DocumentStore protocol (paged reads, writes)

Interfaces follow the Protocol pattern (PEP 544) with @runtime_checkable,
so in-memory fakes and production adapters are interchangeable.

Author: System Architect
Date: 2025-12-08
"""

from src.core.interfaces.document_store import DocumentStore
from src.core.interfaces.realtime import (
    SERVER_TIMESTAMP,
    RealtimeService,
    Unsubscribe,
    resolve_server_values,
)

__all__ = [
    "DocumentStore",
    "RealtimeService",
    "SERVER_TIMESTAMP",
    "Unsubscribe",
    "resolve_server_values",
]
