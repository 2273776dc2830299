"""
Message models for the game analytics SDK.
"""

from typing import Optional, Dict, Any, List


class BaseMessage:
    """Base class for all messages sent to the relay."""

    action = None

    def __init__(self, player_id: str, name: str):
        if not player_id:
            raise ValueError("player_id is required")
        if not name:
            raise ValueError("name is required")
        self.player_id = player_id
        self.name = name

    def to_dict(self) -> Dict[str, Any]:
        """Convert message to dictionary."""
        return {
            'action': self.action,
            'player_id': self.player_id,
            'name': self.name
        }


class RecordEvent(BaseMessage):
    """Event forwarded as soon as the relay receives it."""

    action = "record_event"

    def __init__(self, player_id: str, name: str, value: Optional[float] = None):
        super().__init__(player_id, name)
        self.value = value

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['value'] = self.value
        return data


class RecordDelayedEvent(BaseMessage):
    """Event held by the relay until the player's session is flushed."""

    action = "record_delayed_event"

    def __init__(self, player_id: str, name: str, value: Optional[float] = None,
                 fields: Optional[List[str]] = None):
        super().__init__(player_id, name)
        self.value = value
        self.fields = list(fields) if fields is not None else None

        if self.fields and any(':' in field for field in self.fields):
            raise ValueError("fields cannot contain ':'")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            'value': self.value,
            'fields': self.fields
        })
        return data


class RecordTrackedIncrement(BaseMessage):
    """Increment of a named counter the relay sums until flush."""

    action = "record_tracked_increment"

    def __init__(self, player_id: str, name: str, value: Optional[float] = None):
        super().__init__(player_id, name)
        self.value = value

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['value'] = self.value
        return data


class FlushNamedEvent(BaseMessage):
    """Ask the relay to flush one buffered event and its counter by name."""

    action = "flush_named_event"
