"""
Credit Service Event Models

Event data models for credit ledger events.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

# =============================================================================
# Event Type Definitions (Service-Specific)
# =============================================================================

class CreditEventType(str, Enum):
    """
    Events published by credit_service.

    Stream: credit-stream
    Subjects: credit.>
    """
    CREDIT_ALLOCATED = "credit.allocated"
    CREDIT_CONSUMED = "credit.consumed"
    CREDIT_ADDED = "credit.added"
    CREDIT_REFUNDED = "credit.refunded"
    CREDIT_RESET = "credit.reset"


class CreditStreamConfig:
    """Stream configuration for credit_service"""
    STREAM_NAME = "credit-stream"
    SUBJECTS = ["credit.>"]
    MAX_MESSAGES = 100000
    CONSUMER_PREFIX = "credit"


# ============================================================================
# Credit Ledger Event Models
# ============================================================================


class CreditEventData(BaseModel):
    """Common fields of every credit event"""
    user_id: str = Field(..., description="Account owner")
    amount: int = Field(..., description="Signed transaction amount")
    balance_after: int = Field(..., description="Account balance after the change")
    transaction_id: Optional[str] = Field(None, description="Ledger transaction ID")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CreditAllocatedEventData(CreditEventData):
    """
    Event: credit.allocated
    Triggered when a credit account is opened with its monthly allocation
    """
    tier: Optional[str] = Field(None, description="Membership tier at allocation")


class CreditConsumedEventData(CreditEventData):
    """
    Event: credit.consumed
    Triggered when credits are used (including unlimited-tier usage records)
    """
    description: Optional[str] = None
    service_request_id: Optional[str] = None
    is_unlimited: bool = False


class CreditAddedEventData(CreditEventData):
    """
    Event: credit.added / credit.refunded
    Triggered when credits are purchased, granted or refunded
    """
    transaction_type: str
    description: Optional[str] = None


class CreditResetEventData(CreditEventData):
    """
    Event: credit.reset
    Triggered when a monthly allocation reset sets a new balance
    """
    monthly_allocation: int
