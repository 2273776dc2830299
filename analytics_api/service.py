"""
Analytics service: the in-process entry point for recording and flushing events.
"""

import logging
from typing import Any, Optional, Sequence

from .buffer import EventBuffer
from .collector_client import CollectorClient
from .config import Settings
from .firehose_client import FirehoseClient
from .flush import FlushController
from .models import (
    FlushNamedEventMessage, RecordDelayedEventMessage,
    RecordEventMessage, RecordTrackedIncrementMessage, TelemetryEvent
)
from .sink_adapter import SinkAdapter
from .validation import ValidationResult, validate_event

logger = logging.getLogger(__name__)

DEFAULT_VALUE = 1


class AnalyticsService:
    """
    Validates caller events, buffers delayed and tracked ones per session,
    and flushes them to the sink adapter.

    Nothing is accepted until start() is called. Every operation returns a
    ValidationResult instead of raising on bad input, and a rejected call
    leaves the buffer untouched.
    """

    def __init__(self, sink_adapter: SinkAdapter, buffer: Optional[EventBuffer] = None):
        self.sink_adapter = sink_adapter
        self.buffer = buffer if buffer is not None else EventBuffer()
        self.flush_controller = FlushController(self.buffer, sink_adapter)
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    def start(self):
        """Start accepting events."""
        self.sink_adapter.start()
        self._started = True
        logger.info("Analytics service started")

    def shutdown(self):
        """Flush every buffered session, then stop delivery."""
        self._started = False
        flushed = self.flush_controller.flush_all()
        if flushed:
            logger.info(f"Flushed {flushed} buffered events on shutdown")
        self.sink_adapter.shutdown()
        logger.info("Analytics service stopped")

    def session_started(self, player_id: str):
        """Sessions are created lazily; this only records the join."""
        logger.info(f"Session started: {player_id}")

    def session_ending(self, player_id: str) -> int:
        """Flush everything the session buffered. Returns the flushed count."""
        logger.info(f"Session ending: {player_id}")
        return self.flush_controller.flush_session(player_id)

    def record_event(self, player_id: Any, name: Any, value: Any = None) -> ValidationResult:
        """Forward an event immediately."""
        value = DEFAULT_VALUE if value is None else value
        result = self._validate(player_id, name, value)
        if not result:
            return result
        value = float(value)

        self.sink_adapter.send(player_id, TelemetryEvent(player_id=player_id, name=name, value=value))
        return result

    def record_delayed_event(self, player_id: Any, name: Any, value: Any = None,
                             fields: Optional[Sequence[str]] = None) -> ValidationResult:
        """Buffer an event until the session ends or the name is flushed."""
        value = DEFAULT_VALUE if value is None else value
        result = self._validate(player_id, name, value, fields=fields)
        if not result:
            return result
        value = float(value)

        self.buffer.add_delayed_event(player_id, name, value, fields)
        return result

    def record_tracked_increment(self, player_id: Any, name: Any, value: Any = None) -> ValidationResult:
        """Add to a tracked counter, forwarded as one event when flushed."""
        value = DEFAULT_VALUE if value is None else value
        result = self._validate(player_id, name, value)
        if not result:
            return result
        value = float(value)

        self.buffer.add_tracked_value(player_id, name, value)
        return result

    def flush_named_event(self, player_id: Any, name: Any) -> ValidationResult:
        """
        Flush the oldest delayed event and the tracked counter with this name.

        Nothing buffered under the name is not an error.
        """
        record = {"player_id": player_id, "name": name}
        result = validate_event(record, self._started, require_value=False)
        if not result:
            logger.debug(f"Flush rejected: {result.reason}")
            return result

        self.flush_controller.flush_named_event(player_id, name)
        return result

    def dispatch(self, message) -> ValidationResult:
        """Run the operation a client message asks for."""
        if isinstance(message, RecordEventMessage):
            return self.record_event(message.player_id, message.name, message.value)
        if isinstance(message, RecordDelayedEventMessage):
            return self.record_delayed_event(
                message.player_id, message.name, message.value, message.fields
            )
        if isinstance(message, RecordTrackedIncrementMessage):
            return self.record_tracked_increment(message.player_id, message.name, message.value)
        if isinstance(message, FlushNamedEventMessage):
            return self.flush_named_event(message.player_id, message.name)
        raise TypeError(f"Unhandled message type: {type(message).__name__}")

    def _validate(self, player_id, name, value, fields=None) -> ValidationResult:
        record = {"player_id": player_id, "name": name, "value": value, "fields": fields}
        result = validate_event(record, self._started)
        if not result:
            logger.debug(f"Event {name!r} rejected: {result.reason}")
        return result


def build_service(settings: Settings) -> AnalyticsService:
    """Wire the two backends, the sink adapter and the service from settings."""
    settings.check()

    firehose = FirehoseClient(
        stream_name=settings.firehose_stream_name,
        region_name=settings.aws_region,
        use_mock=settings.use_mock_firehose
    )
    collector = CollectorClient(
        base_url=settings.collector_url,
        game_key=settings.collector_game_key,
        secret_key=settings.collector_secret_key,
        use_mock=settings.use_mock_collector
    )
    sink_adapter = SinkAdapter(
        [firehose, collector],
        source=settings.source_name,
        debug=settings.debug,
        max_workers=settings.sink_workers
    )
    return AnalyticsService(sink_adapter)
