"""
HTTP client for sending analytics messages to the relay.
"""

import requests
import logging
from typing import List, Optional
from .events import (
    BaseMessage, FlushNamedEvent, RecordDelayedEvent,
    RecordEvent, RecordTrackedIncrement
)

logger = logging.getLogger(__name__)


class GameAnalyticsClient:
    """Client for sending game analytics messages to the relay."""

    def __init__(self, base_url: str, api_key: str, timeout: int = 30):
        """
        Initialize the client.

        Args:
            base_url: Relay base URL
            api_key: API key for authentication
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout

        # Setup session with headers
        self.session = requests.Session()
        self.session.headers.update({
            'Content-Type': 'application/json',
            'Authorization': f'Bearer {self.api_key}'
        })

    def record_event(self, player_id: str, name: str, value: Optional[float] = None) -> bool:
        """
        Record an event that is forwarded immediately.

        Args:
            player_id: Player the event belongs to
            name: Event name
            value: Event value, the relay uses 1 when omitted

        Returns:
            True if successful, False otherwise
        """
        return self.send_message(RecordEvent(player_id, name, value))

    def record_delayed_event(self, player_id: str, name: str, value: Optional[float] = None,
                             fields: Optional[List[str]] = None) -> bool:
        """
        Record an event the relay holds until the session ends or it is flushed.

        Args:
            player_id: Player the event belongs to
            name: Event name
            value: Event value, the relay uses 1 when omitted
            fields: Extra event id parts

        Returns:
            True if successful, False otherwise
        """
        return self.send_message(RecordDelayedEvent(player_id, name, value, fields))

    def record_tracked_increment(self, player_id: str, name: str, value: Optional[float] = None) -> bool:
        """Add to a counter that is sent as one event when flushed."""
        return self.send_message(RecordTrackedIncrement(player_id, name, value))

    def flush_named_event(self, player_id: str, name: str) -> bool:
        """Flush one buffered event and the counter with this name."""
        return self.send_message(FlushNamedEvent(player_id, name))

    def send_message(self, message: BaseMessage) -> bool:
        """Send one message to the relay."""
        return self._post('/events', message.to_dict(), message.name)

    def send_batch(self, messages: List[BaseMessage]) -> bool:
        """Send messages in one request. True only if every message was accepted."""
        if not messages:
            return True

        url = f"{self.base_url}/events/batch"
        try:
            response = self.session.post(
                url,
                json=[message.to_dict() for message in messages],
                timeout=self.timeout
            )
            if response.status_code != 200:
                logger.error(f"Failed to send batch: {response.status_code}")
                return False

            data = response.json()
            if data.get('rejected_events'):
                logger.warning(f"Relay rejected {data['rejected_events']} of {len(messages)} messages")
            return bool(data.get('success'))

        except requests.RequestException as e:
            logger.error(f"Request failed: {e}")
            return False

    def start_session(self, player_id: str) -> bool:
        """Notify the relay that a player joined."""
        return self._post(f'/sessions/{player_id}/start', None, player_id)

    def end_session(self, player_id: str) -> bool:
        """Notify the relay that a player is leaving, flushing their events."""
        return self._post(f'/sessions/{player_id}/end', None, player_id)

    def _post(self, endpoint: str, payload, label: str) -> bool:
        """POST to a relay endpoint."""
        url = f"{self.base_url}{endpoint}"

        try:
            response = self.session.post(
                url,
                json=payload,
                timeout=self.timeout
            )

            if response.status_code == 200:
                logger.info(f"Sent successfully: {label}")
                return True
            else:
                logger.error(f"Failed to send {label}: {response.status_code}")
                return False

        except requests.RequestException as e:
            logger.error(f"Request failed: {e}")
            return False

    def health_check(self) -> bool:
        """Check if the relay is healthy."""
        try:
            response = self.session.get(f"{self.base_url}/health", timeout=self.timeout)
            return response.status_code == 200
        except requests.RequestException:
            return False
