"""
Placeholder for integration tests.

Integration tests exercise the guard against real backends:
- Redis-backed realtime service (lease reaping across processes)
- Presence and admission over a shared Redis registry

These tests require external dependencies (USE_REAL_REDIS=1) and run slower than unit tests.
"""
