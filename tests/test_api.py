"""API and realtime channel tests."""

from collections.abc import Iterator
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from lightning_tracker.core.config import Settings
from lightning_tracker.main import app

ANDROID_UA = (
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Mobile Safari/537.36"
)

LOCATION = {
    "latitude": 40.7128,
    "longitude": -74.0060,
    "accuracy": 10.0,
    "speed": 2.5,
    "altitude": 12.0,
    "timestamp": 1718000000000,
}


# ===========================================
# FIXTURES
# ===========================================


@pytest.fixture
def client() -> Iterator[TestClient]:
    """App backed by an in-memory SQLite database and mock weather."""
    test_settings = Settings(database_url="sqlite+aiosqlite:///:memory:", weather_api_key="")
    with patch("lightning_tracker.main.settings", test_settings):
        with TestClient(app) as test_client:
            yield test_client


@pytest.fixture
def offline_client() -> Iterator[TestClient]:
    """App with persistence disabled."""
    test_settings = Settings(database_url="", weather_api_key="")
    with patch("lightning_tracker.main.settings", test_settings):
        with TestClient(app) as test_client:
            yield test_client


# ===========================================
# HTTP ENDPOINTS
# ===========================================


class TestHttpEndpoints:
    def test_root(self, client: TestClient):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_health(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"] == {"database": "Connected", "weather": "mock"}

    def test_health_without_database(self, offline_client: TestClient):
        data = offline_client.get("/health").json()
        assert data["status"] == "degraded"
        assert data["checks"]["database"] == "Disconnected"

    def test_request_id_header(self, client: TestClient):
        response = client.get("/", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_submit_location(self, client: TestClient):
        response = client.post("/api/location", json=LOCATION)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert data["location"]["latitude"] == LOCATION["latitude"]
        assert data["environmental"]["source"] == "mock"
        assert data["timestamp"].endswith("Z")

    def test_submit_location_is_not_persisted(self, client: TestClient):
        client.post("/api/location", json=LOCATION)
        assert client.get("/admin/analytics").json()["totalLocations"] == 0

    def test_submit_location_rejects_bad_coordinates(self, client: TestClient):
        response = client.post("/api/location", json={"latitude": 120, "longitude": 0})
        assert response.status_code == 422

    def test_admin_analytics_empty(self, client: TestClient):
        data = client.get("/admin/analytics").json()
        assert data == {
            "totalSessions": 0,
            "activeSessions": 0,
            "totalLocations": 0,
            "totalAnalytics": 0,
            "totalVisits": 0,
            "recentVisitsCount": 0,
            "recentVisits": [],
            "dbStatus": "Connected",
            "connectedClients": 0,
            "trackingClients": 0,
        }

    def test_admin_analytics_without_database(self, offline_client: TestClient):
        data = offline_client.get("/admin/analytics").json()
        assert data["dbStatus"] == "Disconnected"
        assert data["totalSessions"] == 0

    def test_admin_sessions_without_database(self, offline_client: TestClient):
        assert offline_client.get("/admin/sessions/active").status_code == 503
        assert offline_client.get("/admin/sessions/session_1").status_code == 503

    def test_admin_unknown_session(self, client: TestClient):
        assert client.get("/admin/sessions/session_missing").status_code == 404


# ===========================================
# REALTIME CHANNEL
# ===========================================


class TestRealtimeChannel:
    def test_connect_opens_session(self, client: TestClient):
        with client.websocket_connect("/ws", headers={"user-agent": ANDROID_UA}) as ws:
            connected = ws.receive_json()
            assert connected["type"] == "connected"
            session_id = connected["data"]["sessionId"]
            assert session_id.startswith("session_")

            active = client.get("/admin/sessions/active").json()
            assert [s["sessionId"] for s in active] == [session_id]
            assert active[0]["deviceInfo"] == {"platform": "Android", "browser": "Chrome", "mobile": True}

    def test_location_update_flow(self, client: TestClient):
        with client.websocket_connect("/ws") as sender:
            session_id = sender.receive_json()["data"]["sessionId"]
            sender_id = None

            with client.websocket_connect("/ws") as peer:
                peer_connected = peer.receive_json()
                peer_session_id = peer_connected["data"]["sessionId"]

                sender.send_json({"type": "locationUpdate", "data": LOCATION})

                ack = sender.receive_json()
                assert ack["type"] == "location-received"
                assert ack["data"]["status"] == "success"
                assert ack["data"]["environmental"]["source"] == "mock"

                update = peer.receive_json()
                assert update["type"] == "user-location-update"
                assert update["data"]["latitude"] == LOCATION["latitude"]
                assert update["data"]["environmental"] == ack["data"]["environmental"]
                sender_id = update["data"]["socketId"]

            # Peer left: its session is closed before the departure is announced
            departed = sender.receive_json()
            assert departed["type"] == "user-disconnected"
            assert departed["data"]["socketId"] != sender_id

            peer_stats = client.get(f"/admin/sessions/{peer_session_id}").json()
            assert peer_stats["session"]["isActive"] is False
            assert peer_stats["session"]["sessionDuration"] >= 0

            stats = client.get(f"/admin/sessions/{session_id}").json()
            assert stats["locationCount"] == 1
            assert stats["analytics"]["totalLocationUpdates"] == 1
            assert stats["analytics"]["maxSpeed"] == pytest.approx(9.0)
            assert stats["analytics"]["startLocation"] == {
                "latitude": LOCATION["latitude"],
                "longitude": LOCATION["longitude"],
            }

    def test_feature_used_and_tracking_state(self, client: TestClient):
        with client.websocket_connect("/ws") as ws:
            session_id = ws.receive_json()["data"]["sessionId"]

            ws.send_json({"type": "feature-used", "data": {"feature": "trailMode"}})
            ws.send_json({"type": "startTracking"})
            ws.send_json({"type": "request-environmental-data", "data": {"latitude": 1.0, "longitude": 2.0}})

            reply = ws.receive_json()
            assert reply["type"] == "environmental-data"
            assert "temperature" in reply["data"]

            analytics = client.get("/admin/analytics").json()
            assert analytics["connectedClients"] == 1
            assert analytics["trackingClients"] == 1

            stats = client.get(f"/admin/sessions/{session_id}").json()
            assert stats["analytics"]["featuresUsed"]["trailMode"] is True
            assert stats["analytics"]["featuresUsed"]["satelliteView"] is False

    def test_device_events_are_relayed(self, client: TestClient):
        with client.websocket_connect("/ws") as ws1, client.websocket_connect("/ws") as ws2:
            ws1.receive_json()
            ws2.receive_json()

            ws1.send_json({"type": "device-connected", "data": {"name": "Pixel"}})
            joined = ws2.receive_json()
            assert joined["type"] == "device-joined"
            assert joined["data"]["deviceInfo"] == {"name": "Pixel"}

            ws1.send_json({"type": "device-status", "data": {"battery": 80}})
            status_update = ws2.receive_json()
            assert status_update["type"] == "device-status-update"
            assert status_update["data"]["battery"] == 80

            ws1.send_json({"type": "device-disconnected", "data": {"deviceId": "Pixel"}})
            left = ws2.receive_json()
            assert left["type"] == "device-left"
            assert left["data"]["deviceId"] == "Pixel"

    def test_malformed_events_get_error_reply(self, client: TestClient):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()

            ws.send_text("not json")
            error = ws.receive_json()
            assert error["type"] == "error"
            assert error["data"]["event"] is None

            ws.send_json({"type": "locationUpdate", "data": {"latitude": 200, "longitude": 0}})
            error = ws.receive_json()
            assert error["type"] == "error"
            assert error["data"]["event"] == "locationUpdate"
            assert "latitude" in error["data"]["detail"]

            # The channel stays usable after a rejected frame
            ws.send_json({"type": "locationUpdate", "data": LOCATION})
            assert ws.receive_json()["type"] == "location-received"

    def test_works_without_database(self, offline_client: TestClient):
        with offline_client.websocket_connect("/ws") as ws:
            connected = ws.receive_json()
            assert connected["data"]["sessionId"] is None

            ws.send_json({"type": "locationUpdate", "data": LOCATION})
            ack = ws.receive_json()
            assert ack["type"] == "location-received"
            assert ack["data"]["status"] == "success"

    def test_database_lost_after_startup(self, client: TestClient, refused_session_maker):
        """Store errors degrade tracking but never close the channel."""
        with client.websocket_connect("/ws") as sender, client.websocket_connect("/ws") as peer:
            sender.receive_json()
            peer.receive_json()

            client.app.state.tracking.database.session_maker = refused_session_maker

            sender.send_json({"type": "locationUpdate", "data": LOCATION})
            assert sender.receive_json()["type"] == "location-received"
            assert peer.receive_json()["type"] == "user-location-update"

            sender.send_json({"type": "feature-used", "data": {"feature": "trailMode"}})
            sender.send_json({"type": "request-environmental-data", "data": {"latitude": 1.0, "longitude": 2.0}})
            assert sender.receive_json()["type"] == "environmental-data"

        with client.websocket_connect("/ws") as late:
            assert late.receive_json()["data"]["sessionId"] is None

        assert client.get("/admin/analytics").json()["dbStatus"] == "Disconnected"


# ===========================================
# VISIT TRACKING
# ===========================================


class TestVisitTracking:
    def test_track_visit(self, client: TestClient):
        response = client.post(
            "/api/track",
            json={"page": "/map", "sessionId": "visitor-1", "language": "en-GB", "extra": 1},
            headers={
                "user-agent": ANDROID_UA,
                "referer": "https://example.org/",
                "x-forwarded-for": "203.0.113.9, 10.0.0.1",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["visitId"]
        assert data["message"] == "Visit logged successfully"

        analytics = client.get("/admin/analytics").json()
        assert analytics["totalVisits"] == 1
        assert analytics["recentVisitsCount"] == 1
        visit = analytics["recentVisits"][0]
        assert visit["visitId"] == data["visitId"]
        assert visit["page"] == "/map"
        assert visit["ip"] == "203.0.113.9"
        assert visit["referer"] == "https://example.org/"
        assert visit["os"] == "Android"
        assert visit["device"] == "Mobile"
        assert visit["language"] == "en-GB"

    def test_track_visit_without_body(self, client: TestClient):
        response = client.post("/api/track")

        assert response.status_code == 200
        visit = client.get("/admin/analytics").json()["recentVisits"][0]
        assert visit["page"] == "/"
        assert visit["referer"] == "Direct"

    def test_track_visit_with_malformed_body(self, client: TestClient):
        response = client.post(
            "/api/track",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 200

    def test_track_visit_without_database(self, offline_client: TestClient):
        response = offline_client.post("/api/track", json={"page": "/"})
        assert response.status_code == 503

    def test_get_not_allowed(self, client: TestClient):
        assert client.get("/api/track").status_code == 405
