"""
Service Request Service Event Package

Publishing: status changes and partner assignments.
"""

from .models import (
    ServiceRequestEventType,
    StatusChangedEventData,
    PartnerAssignedEventData,
)
from .publishers import (
    publish_status_changed,
    publish_partner_assigned,
)

__all__ = [
    "ServiceRequestEventType",
    "StatusChangedEventData",
    "PartnerAssignedEventData",
    "publish_status_changed",
    "publish_partner_assigned",
]
