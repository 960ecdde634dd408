"""
Membership Service Protocols

Defines interfaces for dependency injection and testing.
Following the protocol-based architecture pattern.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from .models import SubscriptionStatus


# ====================
# Repository Protocol
# ====================


@runtime_checkable
class MembershipRepositoryProtocol(Protocol):
    """Read-only usage queries for the upgrade advisor"""

    async def initialize(self) -> None:
        """Initialize repository connection"""
        ...

    async def close(self) -> None:
        """Close repository connection"""
        ...

    async def count_requests(
        self,
        client_id: str,
        start: datetime,
        end: datetime,
        status: Optional[str] = None,
    ) -> int:
        """
        Count service requests created in [start, end).

        Args:
            client_id: Requesting member
            start: Period start (inclusive)
            end: Period end (exclusive)
            status: Optional status filter

        Returns:
            Number of matching requests
        """
        ...

    async def sum_credit_usage(self, user_id: str, start: datetime, end: datetime) -> int:
        """Sum of abs(amount) over usage transactions in [start, end)"""
        ...

    async def get_credit_balance(self, user_id: str) -> Optional[int]:
        """Current balance, None when the member has no credit account"""
        ...


# ====================
# Event Bus Protocol
# ====================


@runtime_checkable
class EventBusProtocol(Protocol):
    """Protocol for event bus operations"""

    async def publish_event(self, event: Any) -> bool:
        """Publish event to NATS"""
        ...


# ====================
# Service Client Protocols
# ====================


@runtime_checkable
class SubscriptionClientProtocol(Protocol):
    """Payment backend functions"""

    async def check_subscription(self, access_token: Optional[str], user_id: Optional[str] = None) -> SubscriptionStatus:
        """Look up the caller's subscription"""
        ...

    async def create_checkout(self, price_id: str, access_token: Optional[str]) -> Dict[str, Any]:
        """Create a checkout session, returns {"url": ...}"""
        ...

    async def customer_portal(self, access_token: Optional[str]) -> Dict[str, Any]:
        """Create a customer portal session, returns {"url": ...}"""
        ...


# ====================
# Custom Exceptions
# ====================


class MembershipServiceError(Exception):
    """Base exception for membership service errors"""
    error_code = "REMOTE_FAILURE"


class TierNotFoundError(MembershipServiceError):
    """Raised when a tier id is not in the catalog"""
    error_code = "TIER_NOT_FOUND"


class InvalidUpgradeError(MembershipServiceError):
    """Raised when the target tier is not above the current tier"""
    error_code = "INVALID_UPGRADE"


class RemoteFailureError(MembershipServiceError):
    """Raised when the payment backend call fails"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


__all__ = [
    "MembershipRepositoryProtocol",
    "EventBusProtocol",
    "SubscriptionClientProtocol",
    "MembershipServiceError",
    "TierNotFoundError",
    "InvalidUpgradeError",
    "RemoteFailureError",
]
