"""
Component Test Mocks

Shared mock implementations for component testing.
These mocks replace real I/O dependencies (database, NATS).
"""

from .credit_repository_mock import MockCreditRepository
from .nats_mock import MockEventBus
from .service_request_repository_mock import MockServiceRequestRepository

__all__ = [
    "MockCreditRepository",
    "MockEventBus",
    "MockServiceRequestRepository",
]
