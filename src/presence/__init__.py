"""
Presence Module

- PresenceTracker: one session's ephemeral presence record
- PresenceAggregator: live counts over the whole registry
"""

from .aggregator import PresenceAggregator, summarize
from .models import PresenceProfile, PresenceRecord, PresenceSnapshot
from .tracker import PresenceTracker

__all__ = [
    "PresenceAggregator",
    "PresenceProfile",
    "PresenceRecord",
    "PresenceSnapshot",
    "PresenceTracker",
    "summarize",
]
