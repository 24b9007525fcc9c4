"""
Document Store Module
"""

from .memory_store import InMemoryDocumentStore

__all__ = ["InMemoryDocumentStore"]
