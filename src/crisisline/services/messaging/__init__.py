"""SMS messaging services."""

from crisisline.services.messaging.carrier import (
    CarrierClient,
    CarrierReceipt,
    HttpCarrierClient,
    SandboxCarrierClient,
    create_carrier_client,
)
from crisisline.services.messaging.messaging_gateway import (
    InboundResult,
    MessagingGateway,
)

__all__ = [
    # Carrier
    "CarrierClient",
    "CarrierReceipt",
    "HttpCarrierClient",
    "SandboxCarrierClient",
    "create_carrier_client",
    # Gateway
    "InboundResult",
    "MessagingGateway",
]
