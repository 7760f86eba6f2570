"""Fixtures for HTTP API tests."""

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from crisisline.config import Settings
from crisisline.main import create_application
from crisisline.services.container import ServiceContainer, build_container
from crisisline.services.escalation import InMemoryNotificationSink
from crisisline.services.messaging import SandboxCarrierClient


@pytest.fixture
def container(
    test_settings: Settings,
    carrier: SandboxCarrierClient,
    sink: InMemoryNotificationSink,
) -> ServiceContainer:
    return build_container(test_settings, carrier=carrier, sink=sink)


@pytest.fixture
def client(container: ServiceContainer) -> Iterator[TestClient]:
    app = create_application(container=container)
    with TestClient(app) as test_client:
        yield test_client
