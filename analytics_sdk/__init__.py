"""
Game Analytics SDK

A simple Python SDK for sending gameplay events to the analytics relay.
"""

from .events import RecordEvent, RecordDelayedEvent, RecordTrackedIncrement, FlushNamedEvent
from .client import GameAnalyticsClient

__version__ = "1.0.0"

__all__ = [
    "RecordEvent",
    "RecordDelayedEvent",
    "RecordTrackedIncrement",
    "FlushNamedEvent",
    "GameAnalyticsClient"
]
