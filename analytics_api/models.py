"""
Pydantic models for the analytics relay.
"""

from datetime import datetime
from typing import Annotated, Dict, List, Literal, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt


class DelayedEvent(BaseModel):
    """Event recorded now, forwarded when its session is flushed."""
    model_config = ConfigDict(frozen=True)

    name: str
    value: float
    fields: Optional[Tuple[str, ...]] = None


class TelemetryEvent(BaseModel):
    """Event record handed to the sink adapter."""
    player_id: Union[str, int]
    name: str
    value: float
    fields: Optional[List[str]] = None


class BaseMessage(BaseModel):
    """Base model for all client messages."""
    player_id: Optional[str] = None
    name: str


class RecordEventMessage(BaseMessage):
    """Forward an event immediately."""
    action: Literal["record_event"] = "record_event"
    value: Optional[Union[StrictInt, StrictFloat]] = None


class RecordDelayedEventMessage(BaseMessage):
    """Buffer an event until the session is flushed."""
    action: Literal["record_delayed_event"] = "record_delayed_event"
    value: Optional[Union[StrictInt, StrictFloat]] = None
    fields: Optional[List[str]] = None


class RecordTrackedIncrementMessage(BaseMessage):
    """Add to a named counter."""
    action: Literal["record_tracked_increment"] = "record_tracked_increment"
    value: Optional[Union[StrictInt, StrictFloat]] = None


class FlushNamedEventMessage(BaseMessage):
    """Flush one buffered event and its counter by name."""
    action: Literal["flush_named_event"] = "flush_named_event"


ClientMessage = Annotated[
    Union[
        RecordEventMessage,
        RecordDelayedEventMessage,
        RecordTrackedIncrementMessage,
        FlushNamedEventMessage,
    ],
    Field(discriminator="action"),
]


class EventResponse(BaseModel):
    """Response for an accepted message."""
    success: bool
    action: str
    message: str
    timestamp: datetime


class BatchItemResult(BaseModel):
    """Outcome of one message in a batch."""
    index: int
    action: str
    success: bool
    reason: Optional[str] = None


class BatchResponse(BaseModel):
    """Response for a batch of messages."""
    success: bool
    accepted_events: int
    rejected_events: int
    results: List[BatchItemResult]
    timestamp: datetime


class SessionResponse(BaseModel):
    """Response for session notifications."""
    success: bool
    player_id: str
    flushed_events: int = 0
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Response for errors."""
    success: bool = False
    error: str
    message: str
    timestamp: datetime


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: datetime
    version: str = "1.0.0"
    started: bool = False
    buffered_sessions: int = 0
    sinks: Dict[str, bool] = Field(default_factory=dict)
