"""
Membership Service Event Models

Event data models for membership_service.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


# =============================================================================
# Event Type Definitions (Service-Specific)
# =============================================================================

class MembershipEventType(str, Enum):
    """
    Events published by membership_service.

    Stream: membership-stream
    Subjects: membership.>
    """
    CHECKOUT_STARTED = "membership.checkout_started"
    UPGRADE_RECOMMENDED = "membership.upgrade_recommended"


class MembershipStreamConfig:
    """Stream configuration for membership_service"""
    STREAM_NAME = "membership-stream"
    SUBJECTS = ["membership.>"]
    MAX_MESSAGES = 100000
    CONSUMER_PREFIX = "membership"


# =============================================================================
# Event Data Models
# =============================================================================

class MembershipBaseEventData(BaseModel):
    """Base event data for membership_service events."""
    user_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CheckoutStartedEventData(MembershipBaseEventData):
    """
    Event: membership.checkout_started
    Triggered when a member opens a checkout for an upgrade
    """
    current_tier: Optional[str] = None
    target_tier: str
    billing_period: str
    price_id: str


class UpgradeRecommendedEventData(MembershipBaseEventData):
    """
    Event: membership.upgrade_recommended
    Triggered when the advisor recommends an upgrade
    """
    current_tier: Optional[str] = None
    recommended_tier: Optional[str] = None
    rule: Optional[str] = None
    reason: str
