"""
Game Analytics Relay server.

Buffers per-player analytics events and relays them to telemetry backends.
"""

from .buffer import EventBuffer
from .flush import FlushController
from .service import AnalyticsService, build_service
from .sink_adapter import SinkAdapter, TelemetrySink
from .validation import ValidationResult, validate_event

__version__ = "1.0.0"

__all__ = [
    "AnalyticsService",
    "EventBuffer",
    "FlushController",
    "SinkAdapter",
    "TelemetrySink",
    "ValidationResult",
    "build_service",
    "validate_event"
]
