"""
Precondition checks run before an event touches the buffer or a sink.
"""

from numbers import Real
from typing import Any, Mapping, Optional, Sequence
from pydantic import BaseModel

NOT_STARTED = "not started"
INVALID_DATA = "invalid data"
EVENT_REQUIRED = "event is required"
EVENT_NOT_STRING = "event must be a string"
VALUE_REQUIRED = "value is required"
VALUE_NOT_NUMBER = "value must be a number"
PLAYER_REQUIRED = "player is required"


class ValidationResult(BaseModel):
    """Outcome of the validation gate."""
    ok: bool
    reason: Optional[str] = None

    @classmethod
    def accepted(cls) -> "ValidationResult":
        return cls(ok=True)

    @classmethod
    def rejected(cls, reason: str) -> "ValidationResult":
        return cls(ok=False, reason=reason)

    def __bool__(self) -> bool:
        return self.ok


def validate_event(record: Any, started: bool,
                   require_player: bool = True,
                   require_value: bool = True) -> ValidationResult:
    """
    Check an event record. The first failing check wins.

    Args:
        record: mapping with 'name', 'value', 'player_id' and
                optional 'fields' keys. Player ids are str or int, values
                are real numbers, fields are strings without ':'
        started: whether the analytics service has been started
        require_player: reject records without a player id
        require_value: reject records without a value

    Returns:
        ValidationResult, never raises
    """
    if not started:
        return ValidationResult.rejected(NOT_STARTED)

    if not isinstance(record, Mapping):
        return ValidationResult.rejected(INVALID_DATA)

    fields = record.get("fields")
    if fields is not None:
        if isinstance(fields, str) or not isinstance(fields, Sequence):
            return ValidationResult.rejected(INVALID_DATA)
        if not all(isinstance(field, str) and ":" not in field for field in fields):
            return ValidationResult.rejected(INVALID_DATA)

    name = record.get("name")
    if name is None:
        return ValidationResult.rejected(EVENT_REQUIRED)
    if not isinstance(name, str):
        return ValidationResult.rejected(EVENT_NOT_STRING)

    if require_value:
        value = record.get("value")
        if value is None:
            return ValidationResult.rejected(VALUE_REQUIRED)
        if isinstance(value, bool) or not isinstance(value, Real):
            return ValidationResult.rejected(VALUE_NOT_NUMBER)

    player_id = record.get("player_id")
    if require_player and player_id is None:
        return ValidationResult.rejected(PLAYER_REQUIRED)
    if player_id is not None and (isinstance(player_id, bool) or not isinstance(player_id, (str, int))):
        return ValidationResult.rejected(INVALID_DATA)

    return ValidationResult.accepted()
