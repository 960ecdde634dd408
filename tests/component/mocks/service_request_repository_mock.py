"""
Service Request Repository Mock

In-memory implementation of ServiceRequestRepositoryProtocol.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from microservices.service_request_service.models import (
    Partner,
    PartnerCommission,
    PartnerStatus,
    RequestStatus,
    ServiceRequest,
    ServiceRequestUpdate,
)


class MockServiceRequestRepository:
    """Mock implementation of ServiceRequestRepositoryProtocol for testing"""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.requests: Dict[str, ServiceRequest] = {}
        self.updates: List[ServiceRequestUpdate] = []
        self.partners: Dict[str, Partner] = {}
        self.commissions: List[PartnerCommission] = []
        self.active_services: Dict[str, int] = {}
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        self.fail_on: Dict[str, Exception] = {}
        self.method_calls = []

    def reset(self):
        """Reset all stored data"""
        self.requests.clear()
        self.updates.clear()
        self.partners.clear()
        self.commissions.clear()
        self.active_services.clear()
        self.fail_on.clear()
        self.method_calls.clear()

    def _record(self, name: str, *args):
        self.method_calls.append((name, *args))
        if name in self.fail_on:
            raise self.fail_on[name]

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        pass

    # Test helper methods

    def set_partner(self, partner_id: str, company_name: str, status: PartnerStatus = PartnerStatus.APPROVED) -> Partner:
        partner = Partner(id=partner_id, company_name=company_name, status=status)
        self.partners[partner_id] = partner
        return partner

    def add_commission(self, partner_id: str, amount: float, status: str = "pending") -> PartnerCommission:
        commission = PartnerCommission(
            id=str(uuid.uuid4()),
            partner_id=partner_id,
            commission_amount=amount,
            status=status,
            created_at=self.clock(),
        )
        self.commissions.append(commission)
        return commission

    def force_status(self, request_id: str, status: RequestStatus):
        """Move a request without going through the flow, like a concurrent writer"""
        self.requests[request_id] = self.requests[request_id].model_copy(update={"status": status})

    def updates_for(self, request_id: str) -> List[ServiceRequestUpdate]:
        return [u for u in self.updates if u.service_request_id == request_id]

    # Protocol methods

    async def create_request(self, client_id: str, data: Dict[str, Any]) -> ServiceRequest:
        self._record("create_request", client_id, data)
        now = self.clock()
        request = ServiceRequest(
            id=str(uuid.uuid4()),
            client_id=client_id,
            title=data["title"],
            description=data.get("description"),
            category=data["category"],
            status=RequestStatus.PENDING,
            priority=data.get("priority") or "standard",
            budget_min=data.get("budget_min"),
            budget_max=data.get("budget_max"),
            deadline=data.get("deadline"),
            partner_id=data.get("partner_id"),
            requirements=data.get("requirements") or {},
            created_at=now,
            updated_at=now,
        )
        self.requests[request.id] = request
        return request

    async def get_request(self, request_id: str) -> Optional[ServiceRequest]:
        self._record("get_request", request_id)
        return self.requests.get(request_id)

    async def list_requests(
        self,
        client_id: str,
        status: Optional[RequestStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[ServiceRequest]:
        matches = [
            r for r in reversed(list(self.requests.values()))
            if r.client_id == client_id and (status is None or r.status == status)
        ]
        return matches[offset:offset + limit]

    async def transition_status(
        self,
        request_id: str,
        expected_status: RequestStatus,
        new_status: RequestStatus,
        update: Dict[str, Any],
        partner_id: Optional[str] = None,
    ) -> Optional[Tuple[ServiceRequest, ServiceRequestUpdate]]:
        """Both writes land or neither does, like the single SQL transaction"""
        self._record("transition_status", request_id, expected_status, new_status, update)
        request = self.requests.get(request_id)
        if request is None or request.status != expected_status:
            return None

        # The audit insert fails inside the transaction, rolling back the status
        if "add_update" in self.fail_on:
            raise self.fail_on["add_update"]

        now = self.clock()
        changes = {"status": RequestStatus(new_status), "updated_at": now}
        if partner_id is not None:
            changes["partner_id"] = partner_id
        request = request.model_copy(update=changes)
        record = ServiceRequestUpdate(id=str(uuid.uuid4()), service_request_id=request_id, created_at=now, **update)

        self.requests[request_id] = request
        self.updates.append(record)
        return request, record

    async def delete_request(self, request_id: str) -> bool:
        self._record("delete_request", request_id)
        return self.requests.pop(request_id, None) is not None

    async def add_update(self, request_id: str, update: Dict[str, Any]) -> ServiceRequestUpdate:
        self._record("add_update", request_id, update)
        record = ServiceRequestUpdate(
            id=str(uuid.uuid4()),
            service_request_id=request_id,
            created_at=self.clock(),
            **update,
        )
        self.updates.append(record)
        return record

    async def list_updates(self, request_id: str, client_visible_only: bool = True) -> List[ServiceRequestUpdate]:
        records = [
            u for u in reversed(self.updates_for(request_id))
            if u.is_visible_to_client or not client_visible_only
        ]
        return records

    async def get_partner(self, partner_id: str) -> Optional[Partner]:
        return self.partners.get(partner_id)

    async def list_partner_commissions(self, partner_id: str) -> List[PartnerCommission]:
        return [c for c in reversed(self.commissions) if c.partner_id == partner_id]

    async def count_active_partner_services(self, partner_id: str) -> int:
        return self.active_services.get(partner_id, 0)
