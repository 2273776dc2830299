"""
Maps telemetry events onto the vendor schema and delivers them to the sinks.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Dict, List, Optional, Set

from .models import TelemetryEvent

logger = logging.getLogger(__name__)


class TelemetrySink(ABC):
    """A telemetry backend."""

    name = "sink"

    @abstractmethod
    def send_event(self, event_data: Dict[str, Any]) -> bool:
        """Deliver one event. Returns True on success."""

    def health_check(self) -> bool:
        return True


class SinkAdapter:
    """
    Fans events out to every sink inside an error boundary.

    Deliveries run on a thread pool so callers never wait on a backend.
    Nothing raised by a sink escapes send(); failures are logged at error
    level in debug mode and at debug level otherwise.
    """

    def __init__(self, sinks: List[TelemetrySink], source: str = "game_analytics_relay",
                 debug: bool = False, max_workers: int = 1):
        self.sinks = sinks
        self.source = source
        self.debug = debug
        self.max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._executor is not None

    def start(self):
        """Start the delivery pool."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix="analytics-sink"
            )
            logger.info(f"Sink adapter started with {len(self.sinks)} sinks")

    def shutdown(self):
        """Wait for in-flight deliveries and stop the pool."""
        executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
            logger.info("Sink adapter stopped")

    def to_vendor_payload(self, player_id: str, event: TelemetryEvent) -> Dict[str, Any]:
        """Build the design event payload the backends expect."""
        parts = [event.name] + list(event.fields or [])
        return {
            'category': 'design',
            'event_id': ':'.join(parts),
            'value': event.value,
            'user_id': player_id,
            'client_ts': int(time.time()),
            'source': self.source
        }

    def send(self, player_id: str, event: TelemetryEvent) -> Optional[Future]:
        """
        Deliver an event without blocking the caller.

        Returns the delivery future, or None when the adapter is not running
        and the event was delivered inline.
        """
        try:
            payload = self.to_vendor_payload(player_id, event)
        except Exception as e:
            self._report(f"Could not map event {event.name} for {player_id}: {e}")
            return None

        executor = self._executor
        if executor is None:
            self._deliver(payload)
            return None

        try:
            future = executor.submit(self._deliver, payload)
        except RuntimeError as e:
            # Pool shut down between the check and the submit
            self._report(f"Dropped event {payload['event_id']}: {e}")
            return None

        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._on_done)
        return future

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Wait for in-flight deliveries. Returns False on timeout."""
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def health(self) -> Dict[str, bool]:
        results = {}
        for sink in self.sinks:
            try:
                results[sink.name] = sink.health_check()
            except Exception as e:
                self._report(f"Health check failed for {sink.name}: {e}")
                results[sink.name] = False
        return results

    def _deliver(self, payload: Dict[str, Any]) -> bool:
        delivered = True
        for sink in self.sinks:
            try:
                success = sink.send_event(payload)
            except Exception as e:
                self._report(f"Error sending {payload['event_id']} to {sink.name}: {e}")
                success = False
            else:
                if not success:
                    self._report(f"Failed to send {payload['event_id']} to {sink.name}")
            delivered = delivered and success
        return delivered

    def _on_done(self, future: Future):
        with self._lock:
            self._pending.discard(future)
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self._report(f"Delivery task failed: {error}")

    def _report(self, message: str):
        if self.debug:
            logger.error(message)
        else:
            logger.debug(message)
