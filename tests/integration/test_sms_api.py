"""
Integration Tests for SMS Endpoints

Carrier webhooks, sends and history through the HTTP API.
"""

import pytest
from fastapi.testclient import TestClient

from crisisline.config.settings import DEFAULT_AUTO_REPLY
from crisisline.services.container import ServiceContainer
from crisisline.services.escalation import AlertAudience, InMemoryNotificationSink
from crisisline.services.messaging import SandboxCarrierClient

SUBJECT = "+15551234567"
OUR_NUMBER = "+19998887777"


@pytest.mark.integration
class TestIncomingWebhook:
    """Test suite for POST /sms/incoming."""

    def test_crisis_message_escalates(
        self,
        client: TestClient,
        carrier: SandboxCarrierClient,
        sink: InMemoryNotificationSink,
    ) -> None:
        """Test that crisis language triggers the auto-reply, resources and a responder alert."""
        response = client.post(
            "/api/v1/sms/incoming",
            json={"from": SUBJECT, "to": OUR_NUMBER, "message": "I want to end it all"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Message processed successfully"
        assert body["data"]["crisis_detected"] is True
        assert "suicide" in body["data"]["indicators"]

        replies = [text for to, text in carrier.sent if to == SUBJECT]
        assert len(replies) == 2
        assert replies[0] == DEFAULT_AUTO_REPLY
        assert replies[1].startswith("Crisis support available now:")
        assert len(sink.for_audience(AlertAudience.RESPONDER)) == 1

    def test_ordinary_message_no_reply(
        self,
        client: TestClient,
        carrier: SandboxCarrierClient,
    ) -> None:
        response = client.post(
            "/api/v1/sms/incoming",
            json={"from": SUBJECT, "to": OUR_NUMBER, "message": "Running late, see you at 3"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["crisis_detected"] is False
        assert carrier.sent == []

    @pytest.mark.parametrize(
        "payload",
        [
            {"to": OUR_NUMBER, "message": "hi"},
            {"from": SUBJECT, "message": "hi"},
            {"from": SUBJECT, "to": OUR_NUMBER},
        ],
    )
    def test_missing_fields(self, client: TestClient, payload: dict) -> None:
        response = client.post("/api/v1/sms/incoming", json=payload)

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Missing required fields: from, to, message",
        }


@pytest.mark.integration
class TestStatusWebhook:
    """Test suite for POST /sms/status."""

    def test_delivery_report_applied(self, client: TestClient) -> None:
        sent = client.post("/api/v1/sms/send", json={"to": SUBJECT, "message": "Hello"}).json()["data"]

        response = client.post(
            "/api/v1/sms/status",
            json={"messageId": sent["external_message_id"], "status": "delivered"},
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Status updated successfully"
        assert response.json()["data"]["status"] == "delivered"

    def test_unknown_message_ignored(self, client: TestClient) -> None:
        """Test that an unknown carrier id is acknowledged without error by default."""
        response = client.post(
            "/api/v1/sms/status",
            json={"messageId": "never-sent", "status": "delivered"},
        )

        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_unknown_message_rejected_when_configured(
        self,
        client: TestClient,
        container: ServiceContainer,
    ) -> None:
        container.settings.escalation.unknown_status_policy = "reject"

        response = client.post(
            "/api/v1/sms/status",
            json={"messageId": "never-sent", "status": "delivered"},
        )

        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_unknown_status_value(self, client: TestClient) -> None:
        sent = client.post("/api/v1/sms/send", json={"to": SUBJECT, "message": "Hello"}).json()["data"]

        response = client.post(
            "/api/v1/sms/status",
            json={"messageId": sent["external_message_id"], "status": "teleported"},
        )

        assert response.status_code == 400

    def test_missing_fields(self, client: TestClient) -> None:
        response = client.post("/api/v1/sms/status", json={"status": "delivered"})

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields: messageId, status"


@pytest.mark.integration
class TestSendAndHistory:
    """Test suite for sends and history."""

    def test_rejected_send_returns_failed_message(
        self,
        client: TestClient,
        carrier: SandboxCarrierClient,
    ) -> None:
        """Test that a carrier rejection comes back as a failed message, not an error."""
        carrier.reject_addresses.add(SUBJECT)

        response = client.post("/api/v1/sms/send", json={"to": SUBJECT, "message": "Hello"})

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "failed"
        assert response.json()["data"]["failure_reason"]

    def test_send_missing_fields(self, client: TestClient) -> None:
        response = client.post("/api/v1/sms/send", json={"to": SUBJECT})

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields: to, message"

    def test_history(self, client: TestClient) -> None:
        client.post(
            "/api/v1/sms/incoming",
            json={"from": SUBJECT, "to": OUR_NUMBER, "message": "Hi"},
        )
        client.post("/api/v1/sms/send", json={"to": SUBJECT, "message": "Hello back"})

        response = client.get("/api/v1/sms/history", params={"phoneNumber": SUBJECT})

        assert response.status_code == 200
        assert [m["body"] for m in response.json()["data"]] == ["Hi", "Hello back"]

    def test_history_requires_phone(self, client: TestClient) -> None:
        response = client.get("/api/v1/sms/history")

        assert response.status_code == 400
        assert response.json()["error"] == "Phone number is required"

    def test_refresh_status(
        self,
        client: TestClient,
        carrier: SandboxCarrierClient,
    ) -> None:
        sent = client.post("/api/v1/sms/send", json={"to": SUBJECT, "message": "Hello"}).json()["data"]
        carrier.set_status(sent["external_message_id"], "delivered")

        response = client.post(f"/api/v1/sms/messages/{sent['id']}/refresh")

        assert response.json()["data"]["status"] == "delivered"


@pytest.mark.integration
class TestCrisisAlert:
    """Test suite for POST /sms/crisis-alert."""

    def test_alert_sends_reply_and_resources(
        self,
        client: TestClient,
        carrier: SandboxCarrierClient,
    ) -> None:
        response = client.post(
            "/api/v1/sms/crisis-alert",
            json={"phoneNumber": SUBJECT, "message": "Caller reported distress", "severity": "moderate"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Crisis alert created and response sent"
        assert body["data"]["risk_event"]["source_type"] == "manual"
        assert body["data"]["risk_event"]["risk_level"] == "moderate_risk"
        assert [to for to, _ in carrier.sent] == [SUBJECT, SUBJECT]

    def test_default_severity_high(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/sms/crisis-alert",
            json={"phoneNumber": SUBJECT, "message": "Check on this person"},
        )

        assert response.json()["data"]["risk_event"]["risk_level"] == "high_risk"

    def test_invalid_severity(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/sms/crisis-alert",
            json={"phoneNumber": SUBJECT, "message": "help", "severity": "apocalyptic"},
        )

        assert response.status_code == 400

    def test_missing_fields(self, client: TestClient) -> None:
        response = client.post("/api/v1/sms/crisis-alert", json={"phoneNumber": SUBJECT})

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields: phoneNumber, message"
