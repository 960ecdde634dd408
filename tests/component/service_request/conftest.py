"""
Service Request Service Component Test Fixtures
"""

import pytest

from microservices.service_request_service.service_request_service import ServiceRequestService
from tests.component.mocks import MockEventBus, MockServiceRequestRepository
from tests.contracts.service_request.data_contract import ServiceRequestTestDataFactory


@pytest.fixture
def mock_repository() -> MockServiceRequestRepository:
    return MockServiceRequestRepository()


@pytest.fixture
def request_service(mock_repository, mock_event_bus: MockEventBus) -> ServiceRequestService:
    return ServiceRequestService(repository=mock_repository, event_bus=mock_event_bus)


@pytest.fixture
def data_factory() -> ServiceRequestTestDataFactory:
    return ServiceRequestTestDataFactory()
