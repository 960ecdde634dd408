"""
Credit Service Component Test Fixtures

Provides mocks for credit service component testing:
- MockCreditRepository: In-memory CreditRepositoryProtocol
- MockEventBus: Mock event publishing
"""

import pytest
from tenacity import wait_none

from microservices.credit_service.credit_service import CreditService
from tests.component.mocks import MockCreditRepository, MockEventBus
from tests.contracts.credit.data_contract import CreditTestDataFactory
from tests.contracts.membership.data_contract import MembershipTestDataFactory


@pytest.fixture
def mock_repository() -> MockCreditRepository:
    return MockCreditRepository()


@pytest.fixture
def credit_service(mock_repository: MockCreditRepository, mock_event_bus: MockEventBus) -> CreditService:
    """CreditService with no delay between compare-and-swap attempts"""
    return CreditService(
        repository=mock_repository,
        event_bus=mock_event_bus,
        max_cas_attempts=3,
        retry_wait=wait_none(),
    )


@pytest.fixture
def data_factory() -> CreditTestDataFactory:
    return CreditTestDataFactory()


@pytest.fixture
def member_factory() -> MembershipTestDataFactory:
    return MembershipTestDataFactory()
