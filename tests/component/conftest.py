"""
Component Test Layer Configuration

Structure:
    tests/component/
    ├── membership/       MembershipService
    ├── credit/           CreditService over an in-memory ledger
    ├── service_request/  ServiceRequestService over an in-memory store
    ├── booking/          BookingService wired to real credit and request services
    ├── core/             NATSEventBus over an in-memory JetStream
    └── mocks/            Shared mock implementations

Usage:
    pytest tests/component -v
    pytest tests/component/booking -v
"""
import pytest

from tests.component.mocks import MockEventBus


# =============================================================================
# Event Bus Mocks
# =============================================================================


@pytest.fixture
def mock_event_bus() -> MockEventBus:
    """Mock NATS event bus"""
    return MockEventBus()
