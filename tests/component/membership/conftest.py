"""
Membership Service Component Test Fixtures
"""

from datetime import datetime
from typing import Optional
from unittest.mock import AsyncMock

import pytest

from microservices.membership_service.membership_service import MembershipService
from tests.contracts.membership.data_contract import MembershipTestDataFactory


class MockMembershipRepository:
    """In-memory MembershipRepositoryProtocol"""

    def __init__(self):
        self.request_counts = {}
        self.credit_usage = 0
        self.balance: Optional[int] = None
        self.error: Optional[Exception] = None
        self.method_calls = []

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def count_requests(self, client_id: str, start: datetime, end: datetime, status: Optional[str] = None) -> int:
        self.method_calls.append(("count_requests", client_id, start, end, status))
        if self.error:
            raise self.error
        return self.request_counts.get(status, 0)

    async def sum_credit_usage(self, user_id: str, start: datetime, end: datetime) -> int:
        self.method_calls.append(("sum_credit_usage", user_id, start, end))
        return self.credit_usage

    async def get_credit_balance(self, user_id: str) -> Optional[int]:
        return self.balance


@pytest.fixture
def mock_repository() -> MockMembershipRepository:
    return MockMembershipRepository()


@pytest.fixture
def mock_subscription_client() -> AsyncMock:
    """Mock payment backend client"""
    client = AsyncMock()
    client.create_checkout = AsyncMock(return_value={"url": "https://checkout.example.com/session"})
    client.customer_portal = AsyncMock(return_value={"url": "https://billing.example.com/portal"})
    return client


@pytest.fixture
def membership_service(mock_repository, mock_subscription_client, mock_event_bus) -> MembershipService:
    return MembershipService(
        repository=mock_repository,
        subscription_client=mock_subscription_client,
        event_bus=mock_event_bus,
    )


@pytest.fixture
def member_factory() -> MembershipTestDataFactory:
    return MembershipTestDataFactory()
