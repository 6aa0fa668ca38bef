"""
==============================================================================
API Integration Tests
==============================================================================

Tests for REST API endpoints and the scanning WebSocket.

==============================================================================
"""

import base64
import json

from fastapi.testclient import TestClient


COLA = "5000112637922"
PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def receive_until(websocket, predicate, limit: int = 20) -> list:
    """Collect server messages until one matches."""
    messages = []
    for _ in range(limit):
        message = websocket.receive_json()
        messages.append(message)
        if predicate(message):
            return messages
    raise AssertionError(f"no matching message in {messages}")


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_banner(self, client: TestClient):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["version"] == "1.0.0"
        assert data["docs"] == "/docs"

    def test_health_check(self, client: TestClient):
        """Test health check returns status."""
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] in ["healthy", "degraded"]
        assert data["components"]["lookup"] == "configured"

    def test_readiness_check(self, client: TestClient):
        """Test readiness endpoint."""
        response = client.get("/api/v1/health/ready")
        assert response.status_code == 200
        assert response.json()["ready"] is True

    def test_liveness_check(self, client: TestClient):
        """Test liveness endpoint."""
        response = client.get("/api/v1/health/live")
        assert response.status_code == 200
        assert response.json()["alive"] is True


class TestProductEndpoints:
    """Tests for product lookups."""

    def test_get_product(self, client: TestClient):
        response = client.get(f"/api/v1/products/{COLA}")
        assert response.status_code == 200
        product = response.json()["product"]
        assert product["name"] == "Example Cola"
        assert product["nutrition_grade"] == "c"
        assert product["nutriscore"]["kind"] == "component"

    def test_unknown_product(self, client: TestClient):
        response = client.get("/api/v1/products/0000000000000")
        assert response.status_code == 502
        error = response.json()["error"]
        assert error["code"] == "LOOKUP_HTTP_ERROR"
        assert error["message"] == "API Error: 404 - Not Found"

    def test_response_without_product(self, client: TestClient):
        response = client.get("/api/v1/products/1111111111111")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "LOOKUP_NOT_FOUND"


class TestScanEndpoints:
    """Tests for one-shot scans."""

    def test_scan_image(self, client: TestClient):
        response = client.post(
            "/api/v1/scan/image",
            files={"file": ("label.png", f"code:{COLA}".encode(), "image/png")}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["session"]["barcode"] == COLA
        assert data["session"]["mode"] == "idle"
        assert data["product"]["name"] == "Example Cola"

    def test_scan_image_without_code(self, client: TestClient):
        response = client.post(
            "/api/v1/scan/image",
            files={"file": ("cat.png", PNG, "image/png")}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["session"]["barcode"] is None
        assert data["session"]["error"] == "No barcode detected. Please try a different image."
        assert data["product"] is None

    def test_scan_rejects_non_image(self, client: TestClient):
        response = client.post(
            "/api/v1/scan/image",
            files={"file": ("notes.txt", b"code:1", "text/plain")}
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_manual_scan(self, client: TestClient):
        response = client.post("/api/v1/scan/manual", json={"barcode": f"  {COLA} "})
        assert response.status_code == 200
        data = response.json()
        assert data["session"]["barcode"] == COLA
        assert data["session"]["product_found"] is True

    def test_manual_scan_lookup_failure_keeps_barcode(self, client: TestClient):
        response = client.post("/api/v1/scan/manual", json={"barcode": "0000000000000"})
        data = response.json()
        assert data["success"] is False
        assert data["session"]["barcode"] == "0000000000000"
        assert data["session"]["error"] == "API Error: 404 - Not Found"


class TestContributionEndpoints:
    """Tests for product contributions."""

    def test_contribute(self, client: TestClient, off_transport):
        response = client.post(
            "/api/v1/contributions",
            data={
                "barcode": "3017620422003",
                "product_name": "Hazelnut Spread",
                "creator": "alice",
                "brands": ["Nutella", "Ferrero"],
                "nutriscore": json.dumps({"nutrients": {"sugars": 56.3}, "flags": {"is_fat": True}, "grade": "E"}),
            },
            files=[
                ("images", ("front.png", PNG, "image/png")),
                ("images", ("notes.txt", b"hello", "text/plain")),
            ]
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Product successfully contributed!"
        assert data["rejected_images"] == ["File notes.txt is too large or not an image"]

        body = off_transport.requests[-1].content
        assert b"en:ferrero" in body
        assert b'name="app_uuid"' in body

    def test_contribution_requires_brand(self, client: TestClient, off_transport):
        response = client.post(
            "/api/v1/contributions",
            data={"barcode": "3017620422003", "product_name": "Hazelnut Spread"}
        )
        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "CONTRIBUTION_VALIDATION_ERROR"
        assert off_transport.requests == []

    def test_invalid_nutriscore_field(self, client: TestClient):
        response = client.post(
            "/api/v1/contributions",
            data={
                "barcode": "1",
                "product_name": "x",
                "brands": ["y"],
                "nutriscore": json.dumps({"grade": "z"}),
            }
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestScannerWebSocket:
    """Tests for the interactive acquisition session."""

    def test_manual_entry_pushes_product(self, client: TestClient):
        with client.websocket_connect("/ws/scan") as websocket:
            initial = websocket.receive_json()
            assert initial["type"] == "state"
            assert initial["mode"] == "idle"

            websocket.send_json({"type": "manual", "barcode": COLA})
            messages = receive_until(websocket, lambda m: m["type"] == "product")

            assert messages[-1]["product"]["name"] == "Example Cola"
            states = [m for m in messages if m["type"] == "state"]
            assert states[0]["barcode"] == COLA
            assert states[-1]["product_found"] is True

            websocket.send_json({"type": "stop"})

    def test_live_scan_with_pushed_frames(self, client: TestClient, camera):
        with client.websocket_connect("/ws/scan") as websocket:
            websocket.receive_json()

            websocket.send_json({"type": "start_live", "camera": "granted"})
            receive_until(websocket, lambda m: m.get("mode") == "live_scanning")

            frame = base64.b64encode(f"code:{COLA}".encode()).decode()
            websocket.send_json({"type": "frame", "frame": frame})
            receive_until(websocket, lambda m: m["type"] == "product")

            websocket.send_json({"type": "stop"})

        assert camera.open_streams == []

    def test_denied_camera(self, client: TestClient):
        with client.websocket_connect("/ws/scan") as websocket:
            websocket.receive_json()
            websocket.send_json({"type": "start_live", "camera": "denied"})
            messages = receive_until(websocket, lambda m: m.get("error"))
            assert messages[-1]["mode"] == "idle"
            websocket.send_json({"type": "stop"})

    def test_disconnect_releases_camera(self, client: TestClient, camera):
        with client.websocket_connect("/ws/scan") as websocket:
            websocket.receive_json()
            websocket.send_json({"type": "start_live", "camera": "granted"})
            receive_until(websocket, lambda m: m.get("mode") == "live_scanning")

        assert len(camera.streams) == 1
        assert camera.open_streams == []

    def test_unknown_message(self, client: TestClient):
        with client.websocket_connect("/ws/scan") as websocket:
            websocket.receive_json()
            websocket.send_json({"type": "dance"})
            message = websocket.receive_json()
            assert message["type"] == "error"
            assert message["code"] == "UNKNOWN_MESSAGE"
            websocket.send_json({"type": "stop"})
