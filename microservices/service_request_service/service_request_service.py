"""
Service Request Service - Business Logic Layer

Concierge request pipeline: costing, audited status transitions,
partner assignment, SLA and partner commissions.

Business Rules:
- Requests are created pending; status only moves along SERVICE_STATUS_FLOW edges
- Every transition is a conditional update on the status that was validated
- Every transition appends exactly one audit entry
- Partner assignment requires an approved partner and moves the request to accepted
- Costing is pure; quotes and charges share calculate_service_credit_cost
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple, Union

from microservices.membership_service.models import TierId

from .events.publishers import publish_partner_assigned, publish_status_changed
from .models import (
    CommissionStatus,
    OperationResult,
    PartnerAssignmentResult,
    PartnerPerformance,
    PartnerStatus,
    RequestPriority,
    RequestStatus,
    ServiceCategory,
    ServiceRequest,
    ServiceRequestCreate,
    ServiceRequestUpdate,
    ServiceRequestUpdateCreate,
    SLAMetrics,
    UpdateType,
    UpdaterRole,
)
from .pricing import DEFAULT_COMMISSION_RATE, calculate_partner_commission, calculate_service_credit_cost
from .protocols import (
    EventBusProtocol,
    InvalidTransitionError,
    PartnerNotApprovedError,
    PartnerNotFoundError,
    ServiceRequestNotFoundError,
    ServiceRequestRepositoryProtocol,
    ServiceRequestServiceError,
)
from .sla import calculate_sla_metrics
from .status_flow import can_transition_to, status_title

logger = logging.getLogger(__name__)

# Roles whose updates count as a response to the client
RESPONDER_ROLES = frozenset({UpdaterRole.CONCIERGE, UpdaterRole.PARTNER, UpdaterRole.ADMIN})


class ServiceRequestService:
    """Service request pipeline"""

    def __init__(
        self,
        repository: ServiceRequestRepositoryProtocol,
        event_bus: Optional[EventBusProtocol] = None,
    ):
        """
        Initialize service request service with injected dependencies

        Args:
            repository: Request, audit and partner persistence
            event_bus: Optional event bus for publishing events
        """
        self.repository = repository
        self.event_bus = event_bus

        logger.info("ServiceRequestService initialized with dependency injection")

    # ====================
    # Costing
    # ====================

    def get_service_cost(
        self,
        category: Union[ServiceCategory, str],
        priority: Union[RequestPriority, str] = RequestPriority.STANDARD,
        budget_max: Optional[float] = None,
    ) -> int:
        return calculate_service_credit_cost(category, priority, budget_max)

    # ====================
    # Request Store
    # ====================

    async def create_request(self, client_id: str, request: ServiceRequestCreate) -> ServiceRequest:
        """Insert a pending request"""
        data = request.model_dump(mode="json")
        data["deadline"] = request.deadline
        return await self.repository.create_request(client_id, data)

    async def delete_request(self, request_id: str) -> bool:
        """Remove a request; only used to undo a failed booking"""
        return await self.repository.delete_request(request_id)

    async def get_request(self, request_id: str) -> Optional[ServiceRequest]:
        return await self.repository.get_request(request_id)

    async def list_requests(
        self,
        client_id: str,
        status: Optional[RequestStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[ServiceRequest]:
        return await self.repository.list_requests(client_id, status=status, limit=limit, offset=offset)

    async def get_updates(self, request_id: str, client_visible_only: bool = True) -> List[ServiceRequestUpdate]:
        return await self.repository.list_updates(request_id, client_visible_only=client_visible_only)

    async def transition_status(
        self,
        request_id: str,
        expected_status: RequestStatus,
        new_status: RequestStatus,
        update: ServiceRequestUpdateCreate,
        partner_id: Optional[str] = None,
    ) -> Optional[Tuple[ServiceRequest, ServiceRequestUpdate]]:
        """Status write and audit entry as one commit, None if the status moved underneath"""
        return await self.repository.transition_status(
            request_id, expected_status, new_status, update.model_dump(mode="json"), partner_id=partner_id
        )

    async def append_update(self, request_id: str, update: ServiceRequestUpdateCreate) -> ServiceRequestUpdate:
        return await self.repository.add_update(request_id, update.model_dump(mode="json"))

    # ====================
    # Pipeline
    # ====================

    async def _require_request(self, request_id: str) -> ServiceRequest:
        request = await self.repository.get_request(request_id)
        if request is None:
            raise ServiceRequestNotFoundError("Service request not found")
        return request

    async def _conflict(self, request_id: str, target: RequestStatus) -> InvalidTransitionError:
        """The status changed after validation; report against the latest status"""
        latest = await self._require_request(request_id)
        return InvalidTransitionError(latest.status, target)

    async def advance_service_status(
        self,
        request_id: str,
        new_status: Union[RequestStatus, str],
        actor_id: Optional[str],
        actor_role: Union[UpdaterRole, str],
        notes: Optional[str] = None,
    ) -> OperationResult:
        """
        Move a request along one edge of the status flow.

        Args:
            request_id: Request to advance
            new_status: Target status
            actor_id: Who is making the change
            actor_role: Role recorded on the audit entry
            notes: Optional description for the audit entry

        Returns:
            OperationResult; failures carry INVALID_TRANSITION, NOT_FOUND or REMOTE_FAILURE
        """
        try:
            target = RequestStatus(new_status)
            role = UpdaterRole(actor_role)

            request = await self._require_request(request_id)
            previous = request.status
            if not can_transition_to(previous, target):
                raise InvalidTransitionError(previous, target)

            transitioned = await self.transition_status(
                request_id,
                previous,
                target,
                ServiceRequestUpdateCreate(
                    update_type=UpdateType.STATUS_CHANGE,
                    previous_status=previous,
                    new_status=target,
                    title=status_title(target),
                    description=notes or f"Status updated to {target.value}",
                    updated_by=actor_id,
                    updated_by_role=role,
                ),
            )
            if transitioned is None:
                raise await self._conflict(request_id, target)
            updated, _ = transitioned
            logger.info(f"Request {request_id}: {previous.value} -> {target.value} by {actor_id} ({role.value})")

            await publish_status_changed(self.event_bus, updated, previous, actor_id, role, notes)
            return OperationResult(success=True)

        except ServiceRequestServiceError as e:
            logger.warning(f"Status change rejected for {request_id}: {e}")
            return OperationResult(success=False, error=str(e), error_code=e.error_code)
        except ValueError as e:
            return OperationResult(success=False, error=str(e), error_code=InvalidTransitionError.error_code)
        except Exception as e:
            logger.error(f"Error advancing {request_id}: {e}", exc_info=True)
            return OperationResult(
                success=False, error="Failed to update service status", error_code=ServiceRequestServiceError.error_code
            )

    async def assign_partner(
        self,
        request_id: str,
        partner_id: str,
        actor_id: Optional[str] = None,
        estimated_cost: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> PartnerAssignmentResult:
        """Assign an approved partner; the request becomes accepted"""
        try:
            partner = await self.repository.get_partner(partner_id)
            if partner is None:
                raise PartnerNotFoundError("Partner not found")
            if partner.status != PartnerStatus.APPROVED:
                raise PartnerNotApprovedError("Partner is not approved for assignments")

            request = await self._require_request(request_id)
            previous = request.status
            if previous != RequestStatus.ACCEPTED and not can_transition_to(previous, RequestStatus.ACCEPTED):
                raise InvalidTransitionError(previous, RequestStatus.ACCEPTED)

            description = f"{partner.company_name} has been assigned to fulfill your request."
            if notes:
                description += f" Notes: {notes}"

            transitioned = await self.transition_status(
                request_id,
                previous,
                RequestStatus.ACCEPTED,
                ServiceRequestUpdateCreate(
                    update_type=UpdateType.PARTNER_ASSIGNMENT,
                    previous_status=previous,
                    new_status=RequestStatus.ACCEPTED,
                    title="Partner Assigned",
                    description=description,
                    updated_by=actor_id,
                    updated_by_role=UpdaterRole.CONCIERGE,
                    metadata={"partner_id": partner.id, "estimated_cost": estimated_cost},
                ),
                partner_id=partner.id,
            )
            if transitioned is None:
                raise await self._conflict(request_id, RequestStatus.ACCEPTED)
            updated, _ = transitioned
            logger.info(f"Assigned partner {partner.id} to request {request_id}")

            await publish_partner_assigned(self.event_bus, updated, partner, actor_id, estimated_cost)
            if previous != RequestStatus.ACCEPTED:
                await publish_status_changed(self.event_bus, updated, previous, actor_id, UpdaterRole.CONCIERGE, notes)

            return PartnerAssignmentResult(success=True, partner=partner)

        except ServiceRequestServiceError as e:
            logger.warning(f"Partner assignment rejected for {request_id}: {e}")
            return PartnerAssignmentResult(success=False, error=str(e), error_code=e.error_code)
        except Exception as e:
            logger.error(f"Error assigning partner to {request_id}: {e}", exc_info=True)
            return PartnerAssignmentResult(
                success=False, error="Failed to assign partner", error_code=ServiceRequestServiceError.error_code
            )

    # ====================
    # SLA
    # ====================

    def get_sla_metrics(
        self,
        created_at: datetime,
        tier_id: Union[TierId, str, None],
        first_response_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> SLAMetrics:
        return calculate_sla_metrics(created_at, tier_id, first_response_at, now)

    async def get_request_sla(
        self,
        request_id: str,
        tier_id: Union[TierId, str, None],
        now: Optional[datetime] = None,
    ) -> SLAMetrics:
        """SLA for a stored request; the first concierge, partner or admin update is the response"""
        request = await self._require_request(request_id)
        updates = await self.repository.list_updates(request_id, client_visible_only=False)
        responses = [
            u.created_at for u in updates
            if u.updated_by_role in RESPONDER_ROLES and u.created_at is not None
        ]
        first_response = min(responses) if responses else None
        return calculate_sla_metrics(request.created_at or now or datetime.now(timezone.utc), tier_id, first_response, now)

    # ====================
    # Partners
    # ====================

    def calculate_partner_commission(self, amount: float, rate: float = DEFAULT_COMMISSION_RATE) -> float:
        return calculate_partner_commission(amount, rate)

    async def get_partner_performance(self, partner_id: str) -> PartnerPerformance:
        commissions = await self.repository.list_partner_commissions(partner_id)
        active_services = await self.repository.count_active_partner_services(partner_id)

        total = sum((Decimal(str(c.commission_amount)) for c in commissions), Decimal("0"))
        pending = sum(
            (Decimal(str(c.commission_amount)) for c in commissions if c.status == CommissionStatus.PENDING),
            Decimal("0"),
        )
        return PartnerPerformance(
            partner_id=partner_id,
            total_earnings=float(total),
            completed_bookings=sum(1 for c in commissions if c.status == CommissionStatus.PAID),
            pending_earnings=float(pending),
            active_services=active_services,
        )


__all__ = ["ServiceRequestService", "RESPONDER_ROLES"]
