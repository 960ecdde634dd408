"""
Membership Service Event Package

Publishing: upgrade advice and checkout events.
"""

from .models import (
    MembershipEventType,
    CheckoutStartedEventData,
    UpgradeRecommendedEventData,
)
from .publishers import (
    publish_checkout_started,
    publish_upgrade_recommended,
)

__all__ = [
    "MembershipEventType",
    "CheckoutStartedEventData",
    "UpgradeRecommendedEventData",
    "publish_checkout_started",
    "publish_upgrade_recommended",
]
