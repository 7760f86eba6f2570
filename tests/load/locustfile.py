"""
Load Testing Scripts

Locust load tests for CRISISLINE API endpoints.
Exercises the carrier webhooks at realistic volumes: inbound
messages (a fraction containing crisis language) followed by
delivery-status callbacks.

USAGE:
    locust -f tests/load/locustfile.py --host=http://localhost:8000
"""

import random
import uuid

from locust import task, between, events
from locust.contrib.fasthttp import FastHttpUser


ORDINARY_MESSAGES = [
    "Thanks for the info yesterday",
    "Can I reschedule my appointment?",
    "I'm feeling a bit better today",
    "What time does the group meet?",
]

CRISIS_MESSAGES = [
    "I want to end it all",
    "I don't want to live anymore",
]


class CarrierWebhookUser(FastHttpUser):
    """
    Simulated SMS carrier.

    Posts inbound messages and delivery reports the way a carrier
    webhook would.
    """

    wait_time = between(0.5, 2)

    def on_start(self):
        self.phone_number = f"+1555{random.randint(1000000, 9999999)}"
        self.sent_message_ids: list[str] = []

    @task(10)
    def inbound_message(self):
        """Ordinary inbound SMS."""
        self._post_inbound(random.choice(ORDINARY_MESSAGES))

    @task(1)
    def inbound_crisis_message(self):
        """Inbound SMS that triggers escalation."""
        self._post_inbound(random.choice(CRISIS_MESSAGES), name="/api/v1/sms/incoming [crisis]")

    @task(3)
    def send_message(self):
        with self.client.post(
            "/api/v1/sms/send",
            json={"to": self.phone_number, "message": "Checking in on you today."},
            catch_response=True,
        ) as response:
            if response.status_code != 200:
                response.failure(f"Send failed: {response.status_code}")
                return
            external_id = response.json()["data"].get("external_message_id")
            if external_id:
                self.sent_message_ids.append(external_id)
            response.success()

    @task(3)
    def delivery_report(self):
        """Delivery callback for a previously sent message."""
        if not self.sent_message_ids:
            return
        self.client.post(
            "/api/v1/sms/status",
            json={"messageId": self.sent_message_ids.pop(0), "status": "delivered"},
        )

    @task(1)
    def unknown_delivery_report(self):
        """Callback for an id this instance never sent."""
        self.client.post(
            "/api/v1/sms/status",
            json={"messageId": uuid.uuid4().hex, "status": "delivered"},
            name="/api/v1/sms/status [unknown]",
        )

    @task(2)
    def health_check(self):
        self.client.get("/api/v1/health/live")

    @task(1)
    def metrics_endpoint(self):
        """Prometheus metrics scrape."""
        self.client.get("/metrics")

    def _post_inbound(self, message: str, name: str = "/api/v1/sms/incoming"):
        payload = {
            "from": self.phone_number,
            "to": "+18005550100",
            "message": message,
        }
        with self.client.post(
            "/api/v1/sms/incoming",
            json=payload,
            name=name,
            catch_response=True,
        ) as response:
            if response.status_code == 200:
                response.success()
            else:
                response.failure(f"Inbound failed: {response.status_code}")


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    """Log test start."""
    print("Load test starting...")


@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    """Log test completion."""
    print("Load test complete.")
    print(f"Total requests: {environment.stats.total.num_requests}")
    print(f"Failures: {environment.stats.total.num_failures}")
    print(f"Avg response time: {environment.stats.total.avg_response_time:.2f}ms")
