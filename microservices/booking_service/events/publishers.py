"""
Booking Service Event Publishers

Publishing failures are logged and never fail the booking.
"""

import logging
from typing import Optional

from core.nats_client import Event, ServiceSource

from .models import BookingCancelledEventData, BookingCreatedEventData, BookingEventType

logger = logging.getLogger(__name__)


async def publish_booking_created(
    event_bus,
    request_id: str,
    client_id: str,
    service_id: str,
    partner_id: str,
    category: str,
    priority: str,
    credits_used: int,
    is_unlimited: bool = False,
):
    """Publish booking.created event"""
    if not event_bus:
        return
    try:
        data = BookingCreatedEventData(
            request_id=request_id,
            client_id=client_id,
            service_id=service_id,
            partner_id=partner_id,
            category=category,
            priority=priority,
            credits_used=credits_used,
            is_unlimited=is_unlimited,
        )
        event = Event(
            event_type=BookingEventType.BOOKING_CREATED.value,
            source=ServiceSource.BOOKING_SERVICE,
            data=data.model_dump(mode="json"),
        )
        await event_bus.publish_event(event)
        logger.info(f"Published booking.created for request {request_id}")
    except Exception as e:
        logger.error(f"Failed to publish booking.created: {e}")


async def publish_booking_cancelled(
    event_bus,
    request_id: str,
    client_id: str,
    previous_status: str,
    reason: Optional[str] = None,
    refunded_credits: int = 0,
):
    """Publish booking.cancelled event"""
    if not event_bus:
        return
    try:
        data = BookingCancelledEventData(
            request_id=request_id,
            client_id=client_id,
            previous_status=previous_status,
            reason=reason,
            refunded_credits=refunded_credits,
        )
        event = Event(
            event_type=BookingEventType.BOOKING_CANCELLED.value,
            source=ServiceSource.BOOKING_SERVICE,
            data=data.model_dump(mode="json"),
        )
        await event_bus.publish_event(event)
        logger.info(f"Published booking.cancelled for request {request_id}")
    except Exception as e:
        logger.error(f"Failed to publish booking.cancelled: {e}")
