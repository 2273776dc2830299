"""
AWS Kinesis Firehose sink for design events.
"""

import json
import logging
from typing import Dict, Any
from datetime import datetime
import backoff
import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .sink_adapter import TelemetrySink

logger = logging.getLogger(__name__)


class DeadLetterQueue:
    """Bounded queue of events the stream refused."""
    def __init__(self, max_size: int = 1000):
        self.failed_events = []
        self.max_size = max_size

    def add_failed_event(self, event: Dict[str, Any], error: str):
        """Add failed event to queue, dropping the oldest when full."""
        if len(self.failed_events) >= self.max_size:
            self.failed_events.pop(0)

        failed_event = {
            "event": event,
            "error": error,
            "failed_at": datetime.utcnow().isoformat(),
            "retry_count": 0
        }
        self.failed_events.append(failed_event)
        logger.warning(f"Event added to DLQ: {event.get('event_id')}")


class FirehoseClient(TelemetrySink):
    """AWS Kinesis Firehose sink."""

    name = "firehose"

    def __init__(self, stream_name: str, region_name: str = "us-east-1",
                 use_mock: bool = False):
        """
        Initialize Firehose client.

        Args:
            stream_name: Kinesis Firehose stream name
            region_name: AWS region
            use_mock: Use mock client for testing
        """
        self.stream_name = stream_name
        self.region_name = region_name
        self.dlq = DeadLetterQueue()

        if use_mock:
            self.client = MockFirehoseClient()
            logger.info("Using mock Firehose client")
        else:
            self.client = boto3.client('firehose', region_name=region_name)
            logger.info("Using real AWS Firehose client")

    @property
    def is_mock(self) -> bool:
        return isinstance(self.client, MockFirehoseClient)

    def send_event(self, event_data: Dict[str, Any]) -> bool:
        """Send single event to Firehose."""
        record_data = {
            'ingestion_timestamp': datetime.utcnow().isoformat(),
            **event_data
        }
        try:
            if self.is_mock:
                return self.client.send_event(record_data)
            return self._put_record(record_data)
        except Exception as e:
            logger.error(f"Failed to send event to Firehose: {e}")
            self.dlq.add_failed_event(event_data, str(e))
            return False

    def health_check(self) -> bool:
        """Check if Firehose is accessible."""
        try:
            if self.is_mock:
                return self.client.health_check()
            response = self.client.describe_delivery_stream(
                DeliveryStreamName=self.stream_name
            )
            status = response.get('DeliveryStreamDescription', {}).get('DeliveryStreamStatus')
            return status == 'ACTIVE'
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return False

    # Retry throttling and transport errors with exponential backoff
    @backoff.on_exception(
        backoff.expo,
        Exception,
        max_tries=3,
        giveup=lambda e: not _is_retryable(e)
    )
    def _put_record(self, record_data: Dict[str, Any]) -> bool:
        # Newline-delimited JSON so records stay separable in S3
        json_data = json.dumps(record_data) + '\n'
        response = self.client.put_record(
            DeliveryStreamName=self.stream_name,
            Record={'Data': json_data}
        )
        return response.get('ResponseMetadata', {}).get('HTTPStatusCode') == 200


def _is_retryable(error: Exception) -> bool:
    if isinstance(error, ClientError):
        code = error.response.get('Error', {}).get('Code')
        return code in ('ServiceUnavailableException', 'ThrottlingException')
    return isinstance(error, BotoCoreError)


class MockFirehoseClient:
    """Mock Firehose client for testing."""

    def __init__(self):
        self.sent_events = []
        logger.info("Mock Firehose client initialized")

    def send_event(self, event_data: Dict[str, Any]) -> bool:
        """Mock send event."""
        self.sent_events.append(event_data)
        logger.info(f"Mock: Event sent - {event_data.get('event_id')}")
        return True

    def health_check(self) -> bool:
        """Mock health check."""
        return True

    def get_sent_events(self):
        """Get all sent events (for testing)."""
        return self.sent_events.copy()
