"""
Credit Service Event Publishers

Publish events for credit ledger changes.
Publishing failures are logged and never fail the ledger operation.
"""

import logging
from typing import Optional

from core.nats_client import Event, ServiceSource

from ..models import CreditTransaction, TransactionType
from .models import (
    CreditAddedEventData,
    CreditAllocatedEventData,
    CreditConsumedEventData,
    CreditEventType,
    CreditResetEventData,
)

logger = logging.getLogger(__name__)


async def _publish(event_bus, event_type: CreditEventType, data) -> None:
    event = Event(
        event_type=event_type.value,
        source=ServiceSource.CREDIT_SERVICE,
        data=data.model_dump(mode="json"),
    )
    await event_bus.publish_event(event)


async def publish_credit_allocated(event_bus, user_id: str, amount: int, balance_after: int, tier: Optional[str] = None):
    """Publish credit.allocated event"""
    if not event_bus:
        return
    try:
        await _publish(
            event_bus,
            CreditEventType.CREDIT_ALLOCATED,
            CreditAllocatedEventData(
                user_id=user_id,
                amount=amount,
                balance_after=balance_after,
                tier=tier,
            ),
        )
        logger.info(f"Published credit.allocated for user {user_id}: {amount} credits")
    except Exception as e:
        logger.error(f"Failed to publish credit.allocated: {e}")


async def publish_credit_consumed(event_bus, transaction: CreditTransaction):
    """Publish credit.consumed event"""
    if not event_bus:
        return
    try:
        await _publish(
            event_bus,
            CreditEventType.CREDIT_CONSUMED,
            CreditConsumedEventData(
                user_id=transaction.user_id,
                amount=transaction.amount,
                balance_after=transaction.balance_after,
                transaction_id=transaction.id,
                description=transaction.description,
                service_request_id=transaction.service_request_id,
                is_unlimited=transaction.is_unlimited_usage,
            ),
        )
        logger.info(f"Published credit.consumed for user {transaction.user_id}: {transaction.amount} credits")
    except Exception as e:
        logger.error(f"Failed to publish credit.consumed: {e}")


async def publish_credit_added(event_bus, transaction: CreditTransaction):
    """Publish credit.added, or credit.refunded for refunds"""
    if not event_bus:
        return
    event_type = (
        CreditEventType.CREDIT_REFUNDED
        if transaction.transaction_type == TransactionType.REFUND
        else CreditEventType.CREDIT_ADDED
    )
    try:
        await _publish(
            event_bus,
            event_type,
            CreditAddedEventData(
                user_id=transaction.user_id,
                amount=transaction.amount,
                balance_after=transaction.balance_after,
                transaction_id=transaction.id,
                transaction_type=transaction.transaction_type.value,
                description=transaction.description,
            ),
        )
        logger.info(f"Published {event_type.value} for user {transaction.user_id}: {transaction.amount} credits")
    except Exception as e:
        logger.error(f"Failed to publish {event_type.value}: {e}")


async def publish_credit_reset(event_bus, transaction: CreditTransaction, monthly_allocation: int):
    """Publish credit.reset event"""
    if not event_bus:
        return
    try:
        await _publish(
            event_bus,
            CreditEventType.CREDIT_RESET,
            CreditResetEventData(
                user_id=transaction.user_id,
                amount=transaction.amount,
                balance_after=transaction.balance_after,
                transaction_id=transaction.id,
                monthly_allocation=monthly_allocation,
            ),
        )
        logger.info(f"Published credit.reset for user {transaction.user_id}: balance {transaction.balance_after}")
    except Exception as e:
        logger.error(f"Failed to publish credit.reset: {e}")
