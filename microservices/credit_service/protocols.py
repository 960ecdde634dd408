"""
Credit Service Protocols

Defines interfaces for dependency injection and testing.
Custom exceptions live here (no I/O operations).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from .models import CreditAccount, CreditTransaction


# ====================
# Repository Protocol
# ====================


@runtime_checkable
class CreditRepositoryProtocol(Protocol):
    """Protocol for credit ledger persistence"""

    async def initialize(self) -> None:
        """Initialize repository connection"""
        ...

    async def close(self) -> None:
        """Close repository connection"""
        ...

    async def get_account(self, user_id: str) -> Optional[CreditAccount]:
        """
        Get a member's credit account.

        Args:
            user_id: Account owner

        Returns:
            CreditAccount or None when the member has no account
        """
        ...

    async def get_or_create_account(
        self, user_id: str, allocation: int, description: str
    ) -> Tuple[CreditAccount, bool]:
        """
        Atomically fetch or create an account.

        Creation and its allocation transaction commit together; concurrent
        callers observe exactly one creation.

        Args:
            user_id: Account owner
            allocation: Opening balance and monthly allocation
            description: Description of the opening allocation transaction

        Returns:
            (account, created)
        """
        ...

    async def apply_balance_change(
        self,
        user_id: str,
        expected_balance: int,
        new_balance: int,
        transaction: Dict[str, Any],
        allocation_at: Optional[datetime] = None,
        monthly_allocation: Optional[int] = None,
    ) -> Optional[Tuple[CreditAccount, CreditTransaction]]:
        """
        Compare-and-swap the balance and append its transaction.

        Args:
            user_id: Account owner
            expected_balance: Balance the caller read
            new_balance: Balance to write
            transaction: amount, transaction_type, description,
                service_request_id, metadata
            allocation_at: When set, this is an allocation reset: also sets
                last_allocation_at and monthly_allocation (new_balance unless given)
            monthly_allocation: New monthly allocation, independent of allocation_at

        Returns:
            (account, transaction), or None if the balance changed since it was read
        """
        ...

    async def record_transaction(
        self,
        user_id: str,
        amount: int,
        transaction_type: str,
        balance_after: int,
        description: Optional[str] = None,
        service_request_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> CreditTransaction:
        """Append a transaction without touching the balance"""
        ...

    async def list_transactions(self, user_id: str, limit: int = 20, offset: int = 0) -> List[CreditTransaction]:
        """Transactions newest first"""
        ...

    async def summarize_transactions(self, user_id: str) -> Dict[str, int]:
        """
        Ledger totals.

        Returns:
            {"ledger_sum": ..., "unlimited_usage_total": ..., "count": ...}
            where ledger_sum excludes unlimited usage records
        """
        ...

    async def sum_usage_for_request(self, user_id: str, service_request_id: str) -> int:
        """Sum of metered usage amounts against a request; unlimited usage is excluded"""
        ...

    async def list_accounts(self) -> List[CreditAccount]:
        """All credit accounts"""
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


class CreditServiceError(Exception):
    """Base exception for credit service errors"""
    error_code = "REMOTE_FAILURE"


class CreditAccountNotFoundError(CreditServiceError):
    """Raised when a member has no credit account"""
    error_code = "CREDIT_ACCOUNT_NOT_FOUND"


class InsufficientCreditsError(CreditServiceError):
    """Raised when the balance is below the required amount"""
    error_code = "INSUFFICIENT_CREDITS"

    def __init__(self, message: str, available: Optional[int] = None, required: Optional[int] = None):
        super().__init__(message)
        self.available = available
        self.required = required


class InvalidCreditAmountError(CreditServiceError):
    """Raised when an amount is not a positive integer"""
    error_code = "INVALID_AMOUNT"


class InvalidTransactionTypeError(CreditServiceError):
    """Raised when add_credits receives a non-addition type"""
    error_code = "INVALID_TRANSACTION_TYPE"


class BalanceConflictError(CreditServiceError):
    """Raised when concurrent writers keep changing the balance"""
    error_code = "REMOTE_FAILURE"


__all__ = [
    "CreditRepositoryProtocol",
    "EventBusProtocol",
    "CreditServiceError",
    "CreditAccountNotFoundError",
    "InsufficientCreditsError",
    "InvalidCreditAmountError",
    "InvalidTransactionTypeError",
    "BalanceConflictError",
]
