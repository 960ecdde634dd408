"""
Service Request Service Event Models

Event data models for the request pipeline.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

# =============================================================================
# Event Type Definitions (Service-Specific)
# =============================================================================

class ServiceRequestEventType(str, Enum):
    """
    Events published by service_request_service.

    Stream: service-request-stream
    Subjects: service_request.>
    """
    STATUS_CHANGED = "service_request.status_changed"
    PARTNER_ASSIGNED = "service_request.partner_assigned"


class ServiceRequestStreamConfig:
    """Stream configuration for service_request_service"""
    STREAM_NAME = "service-request-stream"
    SUBJECTS = ["service_request.>"]
    MAX_MESSAGES = 100000
    CONSUMER_PREFIX = "service_request"


# =============================================================================
# Event Data Models
# =============================================================================

class ServiceRequestBaseEventData(BaseModel):
    request_id: str
    client_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class StatusChangedEventData(ServiceRequestBaseEventData):
    """
    Event: service_request.status_changed
    Triggered after a transition is persisted and audited.
    notify_client marks transitions the client should be told about.
    """
    request_title: str
    previous_status: str
    new_status: str
    status_title: str
    updated_by: Optional[str] = None
    updated_by_role: str
    notes: Optional[str] = None
    notify_client: bool = False


class PartnerAssignedEventData(ServiceRequestBaseEventData):
    """
    Event: service_request.partner_assigned
    Triggered when an approved partner takes a request
    """
    partner_id: str
    company_name: str
    assigned_by: Optional[str] = None
    estimated_cost: Optional[float] = None
