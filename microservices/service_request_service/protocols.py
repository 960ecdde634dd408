"""
Service Request Service Protocols

Defines interfaces for dependency injection and testing.
Custom exceptions live here (no I/O operations).
"""

from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from .models import (
    Partner,
    PartnerCommission,
    RequestStatus,
    ServiceRequest,
    ServiceRequestUpdate,
)


# ====================
# Repository Protocol
# ====================


@runtime_checkable
class ServiceRequestRepositoryProtocol(Protocol):
    """Protocol for service request persistence"""

    async def initialize(self) -> None:
        ...

    async def close(self) -> None:
        ...

    async def create_request(self, client_id: str, data: Dict[str, Any]) -> ServiceRequest:
        """Insert a request with status pending"""
        ...

    async def get_request(self, request_id: str) -> Optional[ServiceRequest]:
        ...

    async def list_requests(
        self,
        client_id: str,
        status: Optional[RequestStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[ServiceRequest]:
        """Client's requests, newest first"""
        ...

    async def transition_status(
        self,
        request_id: str,
        expected_status: RequestStatus,
        new_status: RequestStatus,
        update: Dict[str, Any],
        partner_id: Optional[str] = None,
    ) -> Optional[Tuple[ServiceRequest, ServiceRequestUpdate]]:
        """
        Conditional status update plus its audit entry in one transaction.

        Returns:
            The updated request and the appended entry, or None when the
            request is missing or its status is no longer expected_status.
            Nothing is written unless both succeed.
        """
        ...

    async def delete_request(self, request_id: str) -> bool:
        ...

    async def add_update(self, request_id: str, update: Dict[str, Any]) -> ServiceRequestUpdate:
        """Append an audit entry"""
        ...

    async def list_updates(self, request_id: str, client_visible_only: bool = True) -> List[ServiceRequestUpdate]:
        """Audit entries, newest first"""
        ...

    async def get_partner(self, partner_id: str) -> Optional[Partner]:
        ...

    async def list_partner_commissions(self, partner_id: str) -> List[PartnerCommission]:
        ...

    async def count_active_partner_services(self, partner_id: str) -> int:
        ...


# ====================
# Event Bus Protocol
# ====================


@runtime_checkable
class EventBusProtocol(Protocol):
    """Protocol for event bus operations"""

    async def publish_event(self, event: Any) -> bool:
        """Publish event"""
        ...


# ====================
# Custom Exceptions
# ====================


class ServiceRequestServiceError(Exception):
    """Base exception for service request errors"""
    error_code = "REMOTE_FAILURE"


class ServiceRequestNotFoundError(ServiceRequestServiceError):
    """Raised when a request does not exist"""
    error_code = "NOT_FOUND"


class InvalidTransitionError(ServiceRequestServiceError):
    """Raised when a status is not reachable from the current status"""
    error_code = "INVALID_TRANSITION"

    def __init__(self, current: RequestStatus, target: RequestStatus, message: Optional[str] = None):
        self.current = RequestStatus(current)
        self.target = RequestStatus(target)
        super().__init__(message or f"Cannot transition from {self.current.value} to {self.target.value}")


class PartnerNotFoundError(ServiceRequestServiceError):
    error_code = "NOT_FOUND"


class PartnerNotApprovedError(ServiceRequestServiceError):
    error_code = "PARTNER_NOT_APPROVED"


__all__ = [
    "ServiceRequestRepositoryProtocol",
    "EventBusProtocol",
    "ServiceRequestServiceError",
    "ServiceRequestNotFoundError",
    "InvalidTransitionError",
    "PartnerNotFoundError",
    "PartnerNotApprovedError",
]
