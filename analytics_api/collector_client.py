"""
HTTP collector sink (GameAnalytics-style REST API).
"""

import base64
import hashlib
import hmac
import json
import logging
from typing import Dict, Any, List, Optional
import backoff
import requests

from .sink_adapter import TelemetrySink

logger = logging.getLogger(__name__)


class CollectorClient(TelemetrySink):
    """Posts design events to the collector's events endpoint."""

    name = "collector"

    def __init__(self, base_url: str, game_key: Optional[str] = None,
                 secret_key: Optional[str] = None, timeout: int = 10,
                 use_mock: bool = False):
        """
        Initialize the collector client.

        Args:
            base_url: collector base URL
            game_key: public game key, part of the endpoint path
            secret_key: key used to sign request bodies
            timeout: request timeout in seconds
            use_mock: Use mock client for testing
        """
        self.base_url = base_url.rstrip('/')
        self.game_key = game_key
        self.secret_key = secret_key
        self.timeout = timeout

        if use_mock:
            self.client = MockCollectorClient()
            logger.info("Using mock collector client")
        else:
            self.client = requests.Session()
            self.client.headers.update({'Content-Type': 'application/json'})
            logger.info(f"Using collector at {self.base_url}")

    @property
    def is_mock(self) -> bool:
        return isinstance(self.client, MockCollectorClient)

    @property
    def events_url(self) -> str:
        return f"{self.base_url}/v2/{self.game_key}/events"

    def sign(self, body: bytes) -> str:
        """Base64 HMAC-SHA256 of the request body."""
        digest = hmac.new(self.secret_key.encode('utf-8'), body, hashlib.sha256).digest()
        return base64.b64encode(digest).decode('ascii')

    def send_event(self, event_data: Dict[str, Any]) -> bool:
        """Send single event to the collector."""
        return self.send_events([event_data])

    def send_events(self, events: List[Dict[str, Any]]) -> bool:
        """Send events in one request."""
        if self.is_mock:
            return self.client.send_events(events)

        body = json.dumps(events).encode('utf-8')
        try:
            response = self._post(body)
        except requests.RequestException as e:
            logger.error(f"Collector request failed: {e}")
            return False

        if response.status_code != 200:
            logger.error(f"Collector rejected events: {response.status_code}")
            return False
        return True

    def health_check(self) -> bool:
        """Check if the collector is reachable."""
        if self.is_mock:
            return self.client.health_check()
        try:
            response = self.client.get(self.base_url, timeout=self.timeout)
            return response.status_code < 500
        except requests.RequestException as e:
            logger.error(f"Collector health check failed: {e}")
            return False

    @backoff.on_exception(
        backoff.expo,
        (requests.ConnectionError, requests.Timeout),
        max_tries=3
    )
    def _post(self, body: bytes) -> requests.Response:
        return self.client.post(
            self.events_url,
            data=body,
            headers={'Authorization': self.sign(body)},
            timeout=self.timeout
        )


class MockCollectorClient:
    """Mock collector client for testing."""

    def __init__(self):
        self.sent_events = []
        logger.info("Mock collector client initialized")

    def send_events(self, events: List[Dict[str, Any]]) -> bool:
        """Mock send events."""
        self.sent_events.extend(events)
        for event in events:
            logger.info(f"Mock: Event collected - {event.get('event_id')}")
        return True

    def health_check(self) -> bool:
        """Mock health check."""
        return True

    def get_sent_events(self):
        """Get all sent events (for testing)."""
        return self.sent_events.copy()
