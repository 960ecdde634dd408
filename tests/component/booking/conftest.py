"""
Booking Service Component Test Fixtures

BookingService is wired to real CreditService and ServiceRequestService
instances over in-memory repositories, so ledger and pipeline rules apply.
"""

from typing import List, Optional

import pytest
from tenacity import wait_none

from microservices.booking_service.booking_service import BookingService
from microservices.booking_service.models import PartnerService, ServiceCategory
from microservices.credit_service.credit_service import CreditService
from microservices.service_request_service.service_request_service import ServiceRequestService
from tests.component.mocks import MockCreditRepository, MockEventBus, MockServiceRequestRepository
from tests.contracts.booking.data_contract import BookingTestDataFactory
from tests.contracts.membership.data_contract import MembershipTestDataFactory


class MockCatalogRepository:
    """In-memory CatalogRepositoryProtocol"""

    def __init__(self):
        self.services: List[PartnerService] = []

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def list_services(self, category: Optional[ServiceCategory] = None) -> List[PartnerService]:
        return [
            s for s in self.services
            if s.is_active and (category is None or s.category == category)
        ]


@pytest.fixture
def credit_repository() -> MockCreditRepository:
    return MockCreditRepository()


@pytest.fixture
def request_repository() -> MockServiceRequestRepository:
    return MockServiceRequestRepository()


@pytest.fixture
def catalog_repository() -> MockCatalogRepository:
    return MockCatalogRepository()


@pytest.fixture
def credit_service(credit_repository, mock_event_bus: MockEventBus) -> CreditService:
    return CreditService(credit_repository, event_bus=mock_event_bus, max_cas_attempts=3, retry_wait=wait_none())


@pytest.fixture
def request_service(request_repository, mock_event_bus: MockEventBus) -> ServiceRequestService:
    return ServiceRequestService(request_repository, event_bus=mock_event_bus)


@pytest.fixture
def booking_service(credit_service, request_service, catalog_repository, mock_event_bus) -> BookingService:
    return BookingService(
        request_store=request_service,
        credit_ledger=credit_service,
        catalog_repository=catalog_repository,
        event_bus=mock_event_bus,
    )


@pytest.fixture
def refunding_booking_service(credit_service, request_service, catalog_repository, mock_event_bus) -> BookingService:
    return BookingService(
        request_store=request_service,
        credit_ledger=credit_service,
        catalog_repository=catalog_repository,
        event_bus=mock_event_bus,
        refund_on_cancel=True,
    )


@pytest.fixture
def data_factory() -> BookingTestDataFactory:
    return BookingTestDataFactory()


@pytest.fixture
def member_factory() -> MembershipTestDataFactory:
    return MembershipTestDataFactory()
