"""
Membership Service Event Publishers

Publishing failures are logged and never propagate.
"""

import logging
from typing import Optional

from core.nats_client import Event, ServiceSource

from .models import (
    CheckoutStartedEventData,
    MembershipEventType,
    UpgradeRecommendedEventData,
)

logger = logging.getLogger(__name__)


async def publish_checkout_started(
    event_bus,
    user_id: str,
    current_tier: Optional[str],
    target_tier: str,
    billing_period: str,
    price_id: str,
):
    """Publish membership.checkout_started event"""
    if not event_bus:
        return
    try:
        event_data = CheckoutStartedEventData(
            user_id=user_id,
            current_tier=current_tier,
            target_tier=target_tier,
            billing_period=billing_period,
            price_id=price_id,
        )
        event = Event(
            event_type=MembershipEventType.CHECKOUT_STARTED.value,
            source=ServiceSource.MEMBERSHIP_SERVICE,
            data=event_data.model_dump(mode="json"),
        )
        await event_bus.publish_event(event)
        logger.info(f"Published membership.checkout_started for user {user_id}: {target_tier}")
    except Exception as e:
        logger.error(f"Failed to publish membership.checkout_started: {e}")


async def publish_upgrade_recommended(
    event_bus,
    user_id: str,
    current_tier: Optional[str],
    recommended_tier: Optional[str],
    rule: Optional[str],
    reason: str,
):
    """Publish membership.upgrade_recommended event"""
    if not event_bus:
        return
    try:
        event_data = UpgradeRecommendedEventData(
            user_id=user_id,
            current_tier=current_tier,
            recommended_tier=recommended_tier,
            rule=rule,
            reason=reason,
        )
        event = Event(
            event_type=MembershipEventType.UPGRADE_RECOMMENDED.value,
            source=ServiceSource.MEMBERSHIP_SERVICE,
            data=event_data.model_dump(mode="json"),
        )
        await event_bus.publish_event(event)
        logger.info(f"Published membership.upgrade_recommended for user {user_id}: {recommended_tier}")
    except Exception as e:
        logger.error(f"Failed to publish membership.upgrade_recommended: {e}")
