"""
Drains buffered events and forwards them to the sink adapter.
"""

import logging

from .buffer import EventBuffer
from .models import TelemetryEvent

logger = logging.getLogger(__name__)


class FlushController:
    """Flushes sessions, or single events by name, out of an EventBuffer."""

    def __init__(self, buffer: EventBuffer, sink_adapter):
        """
        Initialize the controller.

        Args:
            buffer: buffer to drain
            sink_adapter: object with send(player_id, TelemetryEvent)
        """
        self.buffer = buffer
        self.sink_adapter = sink_adapter

    def flush_session(self, session_key: str) -> int:
        """
        Forward everything buffered for a session and forget the session.

        Delayed events go out in the order they were added, then one event
        per tracked counter. Returns the number of forwarded events.
        """
        # Events are built before anything is removed, so a record that
        # cannot be built leaves the session buffered.
        with self.buffer.lock:
            delayed = self.buffer.delayed_events(session_key)
            tracked = self.buffer.tracked_values(session_key)
            if not delayed and not tracked:
                return 0

            events = [self._build(session_key, e.name, e.value, e.fields) for e in delayed]
            events.extend(self._build(session_key, name, total) for name, total in tracked.items())
            self.buffer.drain_session(session_key)

        for event in events:
            self.sink_adapter.send(session_key, event)

        logger.info(f"Flushed {len(events)} events for session {session_key}")
        return len(events)

    def flush_named_event(self, session_key: str, name: str) -> int:
        """
        Forward the oldest delayed event and the tracked counter for a name.

        Either, both or neither may exist. Returns the number of forwarded
        events.
        """
        events = []
        with self.buffer.lock:
            delayed = self.buffer.find_delayed_event(session_key, name)
            if delayed is not None:
                events.append(self._build(session_key, delayed.name, delayed.value, delayed.fields))

            total = self.buffer.tracked_values(session_key).get(name)
            if total is not None:
                events.append(self._build(session_key, name, total))

            if delayed is not None:
                self.buffer.pop_delayed_event(session_key, name)
            if total is not None:
                self.buffer.pop_tracked_value(session_key, name)

        for event in events:
            self.sink_adapter.send(session_key, event)

        if not events:
            logger.debug(f"Nothing buffered named {name} for session {session_key}")
        return len(events)

    def flush_all(self) -> int:
        """Flush every session that still has pending state."""
        return sum(self.flush_session(key) for key in self.buffer.sessions())

    def _build(self, session_key, name, value, fields=None) -> TelemetryEvent:
        return TelemetryEvent(
            player_id=session_key,
            name=name,
            value=value,
            fields=list(fields) if fields is not None else None
        )
