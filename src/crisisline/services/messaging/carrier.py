"""
SMS Carrier Clients

Interface and implementations for the external SMS carrier.
The messaging gateway only talks to CarrierClient, so carriers can be
swapped without touching message lifecycle code.

ARCHITECTURE: Clients raise CarrierError. The gateway turns every
CarrierError into a failed Message; nothing above the gateway ever
sees a carrier exception.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional
from uuid import uuid4

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from crisisline.config.settings import CarrierSettings
from crisisline.domain.exceptions import CarrierError
from crisisline.config.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class CarrierReceipt:
    """
    Carrier acknowledgment of an accepted message.

    Attributes:
        external_message_id: Carrier-assigned id used by status callbacks
        raw_status: Status string reported by the carrier
        latency_ms: Round-trip time of the send call
    """

    external_message_id: str
    raw_status: str = "sent"
    latency_ms: int = 0


class CarrierClient(ABC):
    """
    Abstract SMS carrier.

    Implementations must be safe to call concurrently from multiple
    tasks on one event loop.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Carrier name for logging/metrics."""

    @abstractmethod
    async def send(self, to_address: str, body: str, originator: str) -> CarrierReceipt:
        """
        Submit one SMS.

        Raises:
            CarrierError: If the carrier rejected the message or
                could not be reached
        """

    @abstractmethod
    async def fetch_status(self, external_message_id: str) -> str:
        """
        Current carrier status for a message.

        Returns:
            Raw carrier status string

        Raises:
            CarrierError: If the status could not be fetched
        """

    async def health_check(self) -> bool:
        return True

    async def aclose(self) -> None:
        """Release network resources."""


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, CarrierError) and error.is_retryable


class HttpCarrierClient(CarrierClient):
    """
    REST carrier client (MessageBird-style API).

    - POST /messages submits a message
    - GET /messages/{id} returns its delivery status
    - Authorization: AccessKey <key>

    Sends are attempted once; the gateway bounds them with its own
    timeout. Status fetches are idempotent and retried with
    exponential backoff.

    Usage:
        client = HttpCarrierClient(settings.carrier)
        receipt = await client.send("+15551234567", "Hello", "+10000000000")
    """

    def __init__(
        self,
        settings: CarrierSettings,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            settings: Carrier configuration
            http_client: Preconfigured client (tests inject a mock transport)
        """
        self._settings = settings
        self._client = http_client or httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=settings.send_timeout_seconds,
            headers={
                "Authorization": f"AccessKey {settings.access_key.get_secret_value()}",
                "Accept": "application/json",
            },
        )

    @property
    def provider_name(self) -> str:
        return "http"

    async def send(self, to_address: str, body: str, originator: str) -> CarrierReceipt:
        start_time = time.monotonic()
        payload = {
            "recipients": [to_address],
            "originator": originator,
            "body": body,
        }

        response = await self._request("POST", "/messages", json=payload)
        data = self._json_object(response)

        external_id = data.get("id")
        if not external_id:
            raise CarrierError("Carrier response did not include a message id")

        latency_ms = int((time.monotonic() - start_time) * 1000)
        logger.debug(
            "Carrier accepted message",
            external_message_id=external_id,
            latency_ms=latency_ms,
        )
        return CarrierReceipt(
            external_message_id=str(external_id),
            raw_status=self._recipient_status(data) or "sent",
            latency_ms=latency_ms,
        )

    async def fetch_status(self, external_message_id: str) -> str:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._settings.status_fetch_attempts),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        ):
            with attempt:
                response = await self._request("GET", f"/messages/{external_message_id}")
                status = self._recipient_status(self._json_object(response))
                if status is None:
                    raise CarrierError("Carrier status response had no recipient status")
                return status
        raise CarrierError("Status fetch did not run")

    async def health_check(self) -> bool:
        try:
            response = await self._client.get("/balance")
        except httpx.HTTPError as e:
            logger.warning("Carrier health check failed", error=str(e))
            return False
        return response.status_code < 500

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: object) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise CarrierError("Carrier request timed out", is_retryable=True, original_error=e)
        except httpx.HTTPError as e:
            raise CarrierError(f"Carrier transport error: {e}", is_retryable=True, original_error=e)

        if response.status_code >= 500:
            raise CarrierError(
                f"Carrier unavailable (HTTP {response.status_code})",
                is_retryable=True,
            )
        if response.status_code >= 400:
            raise CarrierError(f"Carrier rejected request (HTTP {response.status_code})")
        return response

    @staticmethod
    def _json_object(response: httpx.Response) -> dict:
        """
        Decode a 2xx body that must be a JSON object.

        Raises:
            CarrierError: If the body is not JSON or not an object
        """
        try:
            data = response.json()
        except ValueError as e:
            raise CarrierError("Carrier returned malformed response", original_error=e)
        if not isinstance(data, dict):
            raise CarrierError("Carrier returned malformed response")
        return data

    @staticmethod
    def _recipient_status(data: dict) -> Optional[str]:
        recipients = data.get("recipients")
        items = recipients.get("items") if isinstance(recipients, dict) else None
        if not isinstance(items, list) or not items or not isinstance(items[0], dict):
            return None
        status = items[0].get("status")
        return str(status) if status else None


class SandboxCarrierClient(CarrierClient):
    """
    In-process carrier for development and tests.

    Accepts every message unless the address is listed in
    reject_addresses. Delivery is simulated by set_status().
    """

    def __init__(self, reject_addresses: Optional[set[str]] = None) -> None:
        self.reject_addresses = set(reject_addresses or ())
        self.sent: list[tuple[str, str]] = []
        self._statuses: dict[str, str] = {}

    @property
    def provider_name(self) -> str:
        return "sandbox"

    async def send(self, to_address: str, body: str, originator: str) -> CarrierReceipt:
        if to_address in self.reject_addresses:
            raise CarrierError("Recipient rejected by sandbox carrier")

        external_id = f"sbx_{uuid4().hex[:20]}"
        self.sent.append((to_address, body))
        self._statuses[external_id] = "sent"
        return CarrierReceipt(external_message_id=external_id)

    async def fetch_status(self, external_message_id: str) -> str:
        status = self._statuses.get(external_message_id)
        if status is None:
            raise CarrierError(f"Unknown sandbox message: {external_message_id}")
        return status

    def set_status(self, external_message_id: str, status: str) -> None:
        self._statuses[external_message_id] = status


def create_carrier_client(settings: CarrierSettings) -> CarrierClient:
    """Create the configured carrier client."""
    if settings.provider == "http":
        return HttpCarrierClient(settings)
    return SandboxCarrierClient()
