"""
Tests for the Game Analytics Relay API.
"""

import inspect
import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError
from analytics_api.main import app, analytics, health_check
from analytics_api.models import RecordTrackedIncrementMessage


def firehose_events(player_id):
    """Events the mock Firehose received for one player."""
    firehose = analytics.sink_adapter.sinks[0]
    return [e for e in firehose.client.get_sent_events() if e.get('user_id') == player_id]


class TestAPI:
    """Test the Game Analytics Relay API."""

    def setup_method(self):
        """Setup test fixtures."""
        self.client = TestClient(app)
        self.client.__enter__()
        self.headers = {"Authorization": "Bearer your-api-key-here"}

    def teardown_method(self):
        self.client.__exit__(None, None, None)

    def test_root_endpoint(self):
        """Test root endpoint."""
        response = self.client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Game Analytics Relay"

    def test_health_check(self):
        """Test health check endpoint."""
        response = self.client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["started"] is True
        assert data["sinks"] == {"firehose": True, "collector": True}

    def test_record_event_success(self):
        """Plain events are forwarded with the default value."""
        response = self.client.post(
            "/events",
            json={"action": "record_event", "player_id": "api_p1", "name": "Jump"},
            headers=self.headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["action"] == "record_event"

        assert analytics.sink_adapter.wait_idle(timeout=5)
        sent = firehose_events("api_p1")
        assert len(sent) == 1
        assert sent[0]["event_id"] == "Jump"
        assert sent[0]["value"] == 1

    def test_session_end_flushes_buffered_events(self):
        """Tracked and delayed events are held until the session ends."""
        messages = [
            {"action": "record_tracked_increment", "player_id": "api_p2", "name": "Kills"},
            {"action": "record_tracked_increment", "player_id": "api_p2", "name": "Kills"},
            {"action": "record_tracked_increment", "player_id": "api_p2", "name": "Kills"},
            {"action": "record_tracked_increment", "player_id": "api_p2", "name": "Kills", "value": 2},
            {"action": "record_delayed_event", "player_id": "api_p2", "name": "Level",
             "value": 3, "fields": ["World1", "Boss"]},
        ]
        for message in messages:
            response = self.client.post("/events", json=message, headers=self.headers)
            assert response.status_code == 200

        assert analytics.sink_adapter.wait_idle(timeout=5)
        assert firehose_events("api_p2") == []

        response = self.client.post("/sessions/api_p2/end", headers=self.headers)
        assert response.status_code == 200
        assert response.json()["flushed_events"] == 2

        assert analytics.sink_adapter.wait_idle(timeout=5)
        sent = {e["event_id"]: e["value"] for e in firehose_events("api_p2")}
        assert sent == {"Level:World1:Boss": 3, "Kills": 5}

        response = self.client.post("/sessions/api_p2/end", headers=self.headers)
        assert response.json()["flushed_events"] == 0

    def test_flush_named_event(self):
        """Explicit flush sends only the named event."""
        for name in ("A", "B"):
            self.client.post(
                "/events",
                json={"action": "record_delayed_event", "player_id": "api_p3", "name": name},
                headers=self.headers
            )

        response = self.client.post(
            "/events",
            json={"action": "flush_named_event", "player_id": "api_p3", "name": "A"},
            headers=self.headers
        )

        assert response.status_code == 200
        assert analytics.sink_adapter.wait_idle(timeout=5)
        assert [e["event_id"] for e in firehose_events("api_p3")] == ["A"]
        assert [e.name for e in analytics.buffer.delayed_events("api_p3")] == ["B"]

    def test_session_start(self):
        """Session start is acknowledged."""
        response = self.client.post("/sessions/api_p4/start", headers=self.headers)
        assert response.status_code == 200
        assert response.json()["player_id"] == "api_p4"

    def test_missing_player_is_rejected(self):
        """Gate rejections come back as 400 with the reason."""
        response = self.client.post(
            "/events",
            json={"action": "record_delayed_event", "name": "Quest"},
            headers=self.headers
        )

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["message"] == "player is required"

    def test_unknown_action(self):
        """Unknown actions fail model validation."""
        response = self.client.post(
            "/events",
            json={"action": "delete_everything", "player_id": "p", "name": "x"},
            headers=self.headers
        )
        assert response.status_code == 422

    def test_validation_error(self):
        """Missing name fails model validation."""
        response = self.client.post(
            "/events",
            json={"action": "record_event", "player_id": "p"},
            headers=self.headers
        )
        assert response.status_code == 422

    def test_unauthorized_access(self):
        """Test unauthorized access."""
        message = {"action": "record_event", "player_id": "p", "name": "x"}

        # No authorization header
        response = self.client.post("/events", json=message)
        assert response.status_code in (401, 403)

        # Wrong API key
        wrong_headers = {"Authorization": "Bearer wrong-key"}
        response = self.client.post("/events", json=message, headers=wrong_headers)
        assert response.status_code == 401

    def test_batch(self):
        """Batches report per-message results."""
        messages = [
            {"action": "record_tracked_increment", "player_id": "api_p5", "name": "Coins", "value": 10},
            {"action": "record_tracked_increment", "name": "Coins", "value": 10},
        ]

        response = self.client.post("/events/batch", json=messages, headers=self.headers)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["accepted_events"] == 1
        assert data["rejected_events"] == 1
        assert data["results"][1]["reason"] == "player is required"
        assert analytics.buffer.tracked_values("api_p5") == {"Coins": 10}

    @pytest.mark.parametrize("size", [0, 501])
    def test_batch_size_limits(self, size):
        """Empty and oversized batches are refused."""
        messages = [{"action": "record_event", "player_id": "p", "name": "x"}] * size
        response = self.client.post("/events/batch", json=messages, headers=self.headers)
        assert response.status_code == 400

    def test_shutdown_flushes_open_sessions(self):
        """Sessions still open when the app stops are flushed."""
        self.client.post(
            "/events",
            json={"action": "record_delayed_event", "player_id": "api_p6", "name": "Quit"},
            headers=self.headers
        )

        self.client.__exit__(None, None, None)
        self.client = TestClient(app)
        self.client.__enter__()

        assert [e["event_id"] for e in firehose_events("api_p6")] == ["Quit"]
        assert not analytics.buffer.has_session("api_p6")

    @pytest.mark.parametrize("value", [True, "5"])
    def test_value_must_be_a_json_number(self, value):
        """Booleans and numeric strings are not coerced into values."""
        response = self.client.post(
            "/events",
            json={"action": "record_tracked_increment", "player_id": "api_p7", "name": "Kills", "value": value},
            headers=self.headers
        )

        assert response.status_code == 422
        assert not analytics.buffer.has_session("api_p7")

    def test_fields_with_separator_are_rejected(self):
        """Field rules come from the validation gate."""
        response = self.client.post(
            "/events",
            json={"action": "record_delayed_event", "player_id": "api_p8", "name": "Level",
                  "fields": ["World:1"]},
            headers=self.headers
        )

        assert response.status_code == 400
        assert response.json()["message"] == "invalid data"
        assert not analytics.buffer.has_session("api_p8")

    def test_health_check_runs_in_threadpool(self):
        """Blocking sink health checks stay off the event loop."""
        assert not inspect.iscoroutinefunction(health_check)


class TestMessageModels:
    """Test client message models."""

    @pytest.mark.parametrize("value", [True, "5"])
    def test_value_is_strict(self, value):
        """Values must already be numbers."""
        with pytest.raises(ValidationError):
            RecordTrackedIncrementMessage(player_id="p1", name="Kills", value=value)

    @pytest.mark.parametrize("value", [2, 2.5])
    def test_numeric_values_accepted(self, value):
        """Ints and floats pass unchanged."""
        message = RecordTrackedIncrementMessage(player_id="p1", name="Kills", value=value)
        assert message.value == value
