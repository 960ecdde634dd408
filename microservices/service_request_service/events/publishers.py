"""
Service Request Service Event Publishers

Publishing failures are logged and never fail the pipeline operation.
"""

import logging
from typing import Optional

from core.nats_client import Event, ServiceSource

from ..models import Partner, RequestStatus, ServiceRequest, UpdaterRole
from ..status_flow import CLIENT_NOTIFY_STATUSES, status_title
from .models import (
    PartnerAssignedEventData,
    ServiceRequestEventType,
    StatusChangedEventData,
)

logger = logging.getLogger(__name__)


async def publish_status_changed(
    event_bus,
    request: ServiceRequest,
    previous_status: RequestStatus,
    updated_by: Optional[str],
    updated_by_role: UpdaterRole,
    notes: Optional[str] = None,
):
    """Publish service_request.status_changed event"""
    if not event_bus:
        return
    try:
        data = StatusChangedEventData(
            request_id=request.id,
            client_id=request.client_id,
            request_title=request.title,
            previous_status=RequestStatus(previous_status).value,
            new_status=request.status.value,
            status_title=status_title(request.status),
            updated_by=updated_by,
            updated_by_role=UpdaterRole(updated_by_role).value,
            notes=notes,
            notify_client=request.status in CLIENT_NOTIFY_STATUSES,
        )
        event = Event(
            event_type=ServiceRequestEventType.STATUS_CHANGED.value,
            source=ServiceSource.SERVICE_REQUEST_SERVICE,
            data=data.model_dump(mode="json"),
        )
        await event_bus.publish_event(event)
        logger.info(f"Published service_request.status_changed for {request.id}: {data.new_status}")
    except Exception as e:
        logger.error(f"Failed to publish service_request.status_changed: {e}")


async def publish_partner_assigned(
    event_bus,
    request: ServiceRequest,
    partner: Partner,
    assigned_by: Optional[str],
    estimated_cost: Optional[float] = None,
):
    """Publish service_request.partner_assigned event"""
    if not event_bus:
        return
    try:
        data = PartnerAssignedEventData(
            request_id=request.id,
            client_id=request.client_id,
            partner_id=partner.id,
            company_name=partner.company_name,
            assigned_by=assigned_by,
            estimated_cost=estimated_cost,
        )
        event = Event(
            event_type=ServiceRequestEventType.PARTNER_ASSIGNED.value,
            source=ServiceSource.SERVICE_REQUEST_SERVICE,
            data=data.model_dump(mode="json"),
        )
        await event_bus.publish_event(event)
        logger.info(f"Published service_request.partner_assigned for {request.id}: {partner.id}")
    except Exception as e:
        logger.error(f"Failed to publish service_request.partner_assigned: {e}")
