"""
Application Services
"""

from .guard_services import GuardServices

__all__ = ["GuardServices"]
