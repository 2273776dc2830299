"""
Per-session buffer of delayed events and tracked counters.
"""

import logging
import threading
from typing import Dict, List, Optional, Sequence, Tuple

from .models import DelayedEvent

logger = logging.getLogger(__name__)


class EventBuffer:
    """
    Holds pending state for every active session.

    Delayed events are kept in insertion order and never collapse by name.
    Tracked counters collapse by name into a running sum. A session key is
    removed from a map as soon as its list or counter map becomes empty.
    """

    def __init__(self):
        self._delayed: Dict[str, List[DelayedEvent]] = {}
        self._tracked: Dict[str, Dict[str, float]] = {}
        self._lock = threading.RLock()

    def add_delayed_event(self, session_key: str, name: str, value: float,
                          fields: Optional[Sequence[str]] = None) -> DelayedEvent:
        """Append a delayed event to the session's queue."""
        event = DelayedEvent(
            name=name,
            value=value,
            fields=tuple(fields) if fields is not None else None
        )
        with self._lock:
            self._delayed.setdefault(session_key, []).append(event)
        logger.debug(f"Delayed event buffered for {session_key}: {name}")
        return event

    def add_tracked_value(self, session_key: str, name: str, value: float = 1) -> float:
        """Add to a tracked counter and return its new total."""
        with self._lock:
            counters = self._tracked.setdefault(session_key, {})
            counters[name] = counters.get(name, 0) + value
            total = counters[name]
        logger.debug(f"Tracked value {name} for {session_key} is now {total}")
        return total

    @property
    def lock(self):
        """Held by callers that read and then remove entries as one step."""
        return self._lock

    def find_delayed_event(self, session_key: str, name: str) -> Optional[DelayedEvent]:
        """Oldest delayed event with this name, left in place."""
        with self._lock:
            for event in self._delayed.get(session_key, []):
                if event.name == name:
                    return event
        return None

    def drain_session(self, session_key: str) -> Tuple[List[DelayedEvent], Dict[str, float]]:
        """Remove and return everything buffered for a session."""
        with self._lock:
            delayed = self._delayed.pop(session_key, [])
            tracked = self._tracked.pop(session_key, {})
        return delayed, tracked

    def pop_delayed_event(self, session_key: str, name: str) -> Optional[DelayedEvent]:
        """Remove and return the oldest delayed event with this name."""
        with self._lock:
            events = self._delayed.get(session_key)
            if not events:
                return None
            for index, event in enumerate(events):
                if event.name == name:
                    del events[index]
                    if not events:
                        del self._delayed[session_key]
                    return event
        return None

    def pop_tracked_value(self, session_key: str, name: str) -> Optional[float]:
        """Remove and return the total of a tracked counter."""
        with self._lock:
            counters = self._tracked.get(session_key)
            if not counters or name not in counters:
                return None
            total = counters.pop(name)
            if not counters:
                del self._tracked[session_key]
        return total

    def has_session(self, session_key: str) -> bool:
        with self._lock:
            return session_key in self._delayed or session_key in self._tracked

    def sessions(self) -> List[str]:
        """Session keys with pending state."""
        with self._lock:
            keys = list(self._delayed)
            keys.extend(key for key in self._tracked if key not in self._delayed)
        return keys

    def delayed_events(self, session_key: str) -> List[DelayedEvent]:
        """Copy of the session's delayed events, oldest first."""
        with self._lock:
            return list(self._delayed.get(session_key, []))

    def tracked_values(self, session_key: str) -> Dict[str, float]:
        """Copy of the session's tracked counters."""
        with self._lock:
            return dict(self._tracked.get(session_key, {}))
