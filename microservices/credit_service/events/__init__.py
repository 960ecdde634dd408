"""
Credit Service Event Package

Publishing: credit ledger events (allocated, consumed, added, refunded, reset).
"""

from .models import (
    CreditEventType,
    CreditAllocatedEventData,
    CreditConsumedEventData,
    CreditAddedEventData,
    CreditResetEventData,
)

from .publishers import (
    publish_credit_allocated,
    publish_credit_consumed,
    publish_credit_added,
    publish_credit_reset,
)

__all__ = [
    "CreditEventType",
    "CreditAllocatedEventData",
    "CreditConsumedEventData",
    "CreditAddedEventData",
    "CreditResetEventData",
    "publish_credit_allocated",
    "publish_credit_consumed",
    "publish_credit_added",
    "publish_credit_reset",
]
