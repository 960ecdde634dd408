"""
Booking Service Event Models

Event data models for booking_service.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

# =============================================================================
# Event Type Definitions (Service-Specific)
# =============================================================================

class BookingEventType(str, Enum):
    """
    Events published by booking_service.

    Stream: booking-stream
    Subjects: booking.>
    """
    BOOKING_CREATED = "booking.created"
    BOOKING_CANCELLED = "booking.cancelled"


class BookingStreamConfig:
    """Stream configuration for booking_service"""
    STREAM_NAME = "booking-stream"
    SUBJECTS = ["booking.>"]
    MAX_MESSAGES = 100000
    CONSUMER_PREFIX = "booking"


# =============================================================================
# Event Data Models
# =============================================================================

class BookingBaseEventData(BaseModel):
    request_id: str
    client_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class BookingCreatedEventData(BookingBaseEventData):
    """
    Event: booking.created
    Triggered after the request is stored and credits are charged
    """
    service_id: str
    partner_id: str
    category: str
    priority: str
    credits_used: int
    is_unlimited: bool = False


class BookingCancelledEventData(BookingBaseEventData):
    """
    Event: booking.cancelled
    Triggered when a client cancels within the cancellable window
    """
    previous_status: str
    reason: Optional[str] = None
    refunded_credits: int = 0
