"""
Booking Service Event Package

Publishing: booking created and cancelled.
"""

from .models import (
    BookingEventType,
    BookingCreatedEventData,
    BookingCancelledEventData,
)
from .publishers import (
    publish_booking_created,
    publish_booking_cancelled,
)

__all__ = [
    "BookingEventType",
    "BookingCreatedEventData",
    "BookingCancelledEventData",
    "publish_booking_created",
    "publish_booking_cancelled",
]
