"""
Booking Service Protocols

Collaborator interfaces for booking orchestration. The booking service talks
to the credit ledger and the request store only through these protocols.
Custom exceptions live here (no I/O operations).
"""

from typing import Any, List, Optional, Protocol, Tuple, Union, runtime_checkable

from microservices.credit_service.models import CreditAccount, CreditOperationResult, TransactionType
from microservices.membership_service.models import MemberContext, ServiceCategory
from microservices.service_request_service.models import (
    RequestStatus,
    ServiceRequest,
    ServiceRequestCreate,
    ServiceRequestUpdate,
    ServiceRequestUpdateCreate,
)

from .models import PartnerService


@runtime_checkable
class RequestStoreProtocol(Protocol):
    """Service request persistence used by bookings"""

    async def create_request(self, client_id: str, request: ServiceRequestCreate) -> ServiceRequest:
        ...

    async def delete_request(self, request_id: str) -> bool:
        ...

    async def get_request(self, request_id: str) -> Optional[ServiceRequest]:
        ...

    async def transition_status(
        self,
        request_id: str,
        expected_status: RequestStatus,
        new_status: RequestStatus,
        update: ServiceRequestUpdateCreate,
    ) -> Optional[Tuple[ServiceRequest, ServiceRequestUpdate]]:
        """Status write and audit entry as one commit, None if the status moved"""
        ...

    async def append_update(self, request_id: str, update: ServiceRequestUpdateCreate) -> ServiceRequestUpdate:
        ...


@runtime_checkable
class CreditLedgerProtocol(Protocol):
    """Credit ledger used by bookings"""

    async def fetch_credits(self, member: MemberContext) -> Optional[CreditAccount]:
        ...

    async def use_credit(
        self,
        member: MemberContext,
        amount: int,
        description: str,
        service_request_id: Optional[str] = None,
    ) -> CreditOperationResult:
        ...

    async def add_credits(
        self,
        member: Union[MemberContext, str],
        amount: int,
        transaction_type: Union[TransactionType, str],
        description: str,
    ) -> CreditOperationResult:
        ...

    async def credits_charged_for_request(self, user_id: str, service_request_id: str) -> int:
        """Metered credits debited for a request, read from the ledger"""
        ...


@runtime_checkable
class CatalogRepositoryProtocol(Protocol):
    """Partner service catalog"""

    async def initialize(self) -> None:
        ...

    async def close(self) -> None:
        ...

    async def list_services(self, category: Optional[ServiceCategory] = None) -> List[PartnerService]:
        """Active services ordered by title"""
        ...


@runtime_checkable
class EventBusProtocol(Protocol):
    """Protocol for event bus operations"""

    async def publish_event(self, event: Any) -> bool:
        """Publish event"""
        ...


# ====================
# Custom Exceptions
# ====================


class BookingServiceError(Exception):
    """Base exception for booking errors"""
    error_code = "REMOTE_FAILURE"


class NotAuthenticatedError(BookingServiceError):
    error_code = "NOT_AUTHENTICATED"


class InsufficientCreditsError(BookingServiceError):
    error_code = "INSUFFICIENT_CREDITS"

    def __init__(self, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(f"Insufficient credits. You need {required} credits but only have {available}.")


class BookingNotFoundError(BookingServiceError):
    error_code = "NOT_FOUND"


class NotAuthorizedError(BookingServiceError):
    error_code = "NOT_AUTHORIZED"


class CancellationNotAllowedError(BookingServiceError):
    error_code = "CANCELLATION_NOT_ALLOWED"


__all__ = [
    "RequestStoreProtocol",
    "CreditLedgerProtocol",
    "CatalogRepositoryProtocol",
    "EventBusProtocol",
    "BookingServiceError",
    "NotAuthenticatedError",
    "InsufficientCreditsError",
    "BookingNotFoundError",
    "NotAuthorizedError",
    "CancellationNotAllowedError",
]
