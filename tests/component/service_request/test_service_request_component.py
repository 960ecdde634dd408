"""
Service Request Service Component Tests

Tests ServiceRequestService against the in-memory request store.

Coverage:
1. Request store
2. Status transitions and their audit trail
3. Partner assignment
4. SLA and partner performance

Usage:
    pytest tests/component/service_request -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from microservices.membership_service.models import TierId
from microservices.service_request_service.models import (
    PartnerStatus,
    RequestStatus,
    ServiceCategory,
    ServiceRequestUpdateCreate,
    UpdateType,
    UpdaterRole,
)
from microservices.service_request_service.protocols import ServiceRequestNotFoundError
from microservices.service_request_service.service_request_service import ServiceRequestService
from tests.component.mocks import MockServiceRequestRepository

S = RequestStatus


async def _walk(service, request_id, *statuses, actor="concierge_1"):
    for status in statuses:
        result = await service.advance_service_status(request_id, status, actor, UpdaterRole.CONCIERGE)
        assert result.success, result.error


# =============================================================================
# 1. Request Store
# =============================================================================


@pytest.mark.component
@pytest.mark.asyncio
class TestRequestStore:

    async def test_new_requests_are_pending(self, request_service, data_factory):
        client_id = data_factory.make_client_id()
        deadline = datetime.now(timezone.utc) + timedelta(days=3)

        request = await request_service.create_request(
            client_id, data_factory.make_request_create(deadline=deadline)
        )

        assert request.status == S.PENDING
        assert request.client_id == client_id
        assert request.deadline == deadline

    async def test_list_filters_by_client_and_status(self, request_service, data_factory):
        client_id = data_factory.make_client_id()
        first = await request_service.create_request(client_id, data_factory.make_request_create())
        await request_service.create_request(client_id, data_factory.make_request_create())
        await request_service.create_request(data_factory.make_client_id(), data_factory.make_request_create())
        await _walk(request_service, first.id, S.IN_REVIEW)

        assert len(await request_service.list_requests(client_id)) == 2
        in_review = await request_service.list_requests(client_id, status=S.IN_REVIEW)
        assert [r.id for r in in_review] == [first.id]

    async def test_delete_request(self, request_service, data_factory):
        request = await request_service.create_request(data_factory.make_client_id(), data_factory.make_request_create())

        assert await request_service.delete_request(request.id) is True
        assert await request_service.get_request(request.id) is None
        assert await request_service.delete_request(request.id) is False

    async def test_hidden_updates_are_filtered_for_clients(self, request_service, data_factory):
        request = await request_service.create_request(data_factory.make_client_id(), data_factory.make_request_create())
        await request_service.append_update(
            request.id,
            ServiceRequestUpdateCreate(
                update_type=UpdateType.MESSAGE,
                title="Internal note",
                updated_by_role=UpdaterRole.CONCIERGE,
                is_visible_to_client=False,
            ),
        )

        assert await request_service.get_updates(request.id) == []
        assert len(await request_service.get_updates(request.id, client_visible_only=False)) == 1

    async def test_quote(self, request_service):
        assert request_service.get_service_cost(ServiceCategory.PRIVATE_AVIATION, budget_max=30000) == 11


# =============================================================================
# 2. Status Transitions
# =============================================================================


@pytest.mark.component
@pytest.mark.asyncio
class TestAdvanceStatus:

    async def test_valid_transition_is_audited(self, request_service, mock_repository, mock_event_bus, data_factory):
        request = await request_service.create_request(data_factory.make_client_id(), data_factory.make_request_create())

        result = await request_service.advance_service_status(
            request.id, S.IN_REVIEW, "concierge_7", UpdaterRole.CONCIERGE
        )

        assert result.success is True
        assert (await request_service.get_request(request.id)).status == S.IN_REVIEW
        [update] = mock_repository.updates_for(request.id)
        assert update.update_type == UpdateType.STATUS_CHANGE
        assert (update.previous_status, update.new_status) == (S.PENDING, S.IN_REVIEW)
        assert update.title == "Under Review"
        assert update.description == "Status updated to in_review"
        assert update.updated_by == "concierge_7"
        mock_event_bus.assert_event_published(
            "service_request.status_changed",
            {"previous_status": "pending", "new_status": "in_review", "notify_client": False},
        )

    async def test_notes_become_the_description(self, request_service, mock_repository, data_factory):
        request = await request_service.create_request(data_factory.make_client_id(), data_factory.make_request_create())

        await request_service.advance_service_status(
            request.id, S.ACCEPTED, "concierge_7", UpdaterRole.CONCIERGE, notes="Booked at Le Bernardin"
        )

        [update] = mock_repository.updates_for(request.id)
        assert update.description == "Booked at Le Bernardin"

    async def test_accepting_notifies_client(self, request_service, mock_event_bus, data_factory):
        request = await request_service.create_request(data_factory.make_client_id(), data_factory.make_request_create())

        await request_service.advance_service_status(request.id, S.ACCEPTED, "concierge_7", UpdaterRole.CONCIERGE)

        mock_event_bus.assert_event_published("service_request.status_changed", {"notify_client": True})

    async def test_full_pipeline(self, request_service, mock_repository, data_factory):
        request = await request_service.create_request(data_factory.make_client_id(), data_factory.make_request_create())

        await _walk(
            request_service, request.id,
            S.IN_REVIEW, S.SOURCING, S.OPTIONS_READY, S.AWAITING_CONFIRMATION, S.FULFILLING, S.COMPLETED,
        )

        assert (await request_service.get_request(request.id)).status == S.COMPLETED
        assert len(mock_repository.updates_for(request.id)) == 6

    async def test_invalid_transition_changes_nothing(
        self, request_service, mock_repository, mock_event_bus, data_factory
    ):
        request = await request_service.create_request(data_factory.make_client_id(), data_factory.make_request_create())

        result = await request_service.advance_service_status(
            request.id, S.COMPLETED, "concierge_7", UpdaterRole.CONCIERGE
        )

        assert result.success is False
        assert result.error_code == "INVALID_TRANSITION"
        assert result.error == "Cannot transition from pending to completed"
        assert (await request_service.get_request(request.id)).status == S.PENDING
        assert mock_repository.updates_for(request.id) == []
        mock_event_bus.assert_no_events_published()

    async def test_terminal_status_cannot_move(self, request_service, data_factory):
        request = await request_service.create_request(data_factory.make_client_id(), data_factory.make_request_create())
        await _walk(request_service, request.id, S.CANCELLED)

        result = await request_service.advance_service_status(request.id, S.PENDING, "admin", UpdaterRole.ADMIN)

        assert result.error_code == "INVALID_TRANSITION"

    async def test_unknown_status_value(self, request_service, data_factory):
        request = await request_service.create_request(data_factory.make_client_id(), data_factory.make_request_create())

        result = await request_service.advance_service_status(request.id, "archived", "admin", UpdaterRole.ADMIN)

        assert result.success is False
        assert result.error_code == "INVALID_TRANSITION"

    async def test_missing_request(self, request_service):
        result = await request_service.advance_service_status("missing", S.IN_REVIEW, "admin", UpdaterRole.ADMIN)
        assert result.error_code == "NOT_FOUND"
        assert result.error == "Service request not found"

    async def test_concurrent_change_is_reported_against_latest_status(
        self, request_service, mock_repository, data_factory
    ):
        request = await request_service.create_request(data_factory.make_client_id(), data_factory.make_request_create())
        original_transition = mock_repository.transition_status

        async def racing_transition(request_id, expected_status, new_status, update, partner_id=None):
            # A client cancels between validation and the write
            mock_repository.force_status(request_id, S.CANCELLED)
            return await original_transition(request_id, expected_status, new_status, update, partner_id)

        mock_repository.transition_status = racing_transition
        result = await request_service.advance_service_status(
            request.id, S.IN_REVIEW, "concierge_7", UpdaterRole.CONCIERGE
        )

        assert result.success is False
        assert result.error_code == "INVALID_TRANSITION"
        assert result.error == "Cannot transition from cancelled to in_review"
        assert mock_repository.updates_for(request.id) == []

    async def test_store_failure(self, request_service, mock_repository, data_factory):
        request = await request_service.create_request(data_factory.make_client_id(), data_factory.make_request_create())
        mock_repository.fail_on["add_update"] = ConnectionError("database unavailable")

        result = await request_service.advance_service_status(
            request.id, S.IN_REVIEW, "concierge_7", UpdaterRole.CONCIERGE
        )

        assert result.success is False
        assert result.error == "Failed to update service status"
        assert result.error_code == "REMOTE_FAILURE"
        assert (await request_service.get_request(request.id)).status == S.PENDING
        assert mock_repository.updates_for(request.id) == []


# =============================================================================
# 3. Partner Assignment
# =============================================================================


@pytest.mark.component
@pytest.mark.asyncio
class TestAssignPartner:

    async def test_assignment_accepts_request(self, request_service, mock_repository, mock_event_bus, data_factory):
        request = await request_service.create_request(data_factory.make_client_id(), data_factory.make_request_create())
        partner = mock_repository.set_partner(data_factory.make_partner_id(), "Skyline Jets")

        result = await request_service.assign_partner(
            request.id, partner.id, actor_id="concierge_7", estimated_cost=12000, notes="Gulfstream G650"
        )

        assert result.success is True
        assert result.partner.company_name == "Skyline Jets"
        stored = await request_service.get_request(request.id)
        assert (stored.status, stored.partner_id) == (S.ACCEPTED, partner.id)
        [update] = mock_repository.updates_for(request.id)
        assert update.update_type == UpdateType.PARTNER_ASSIGNMENT
        assert update.title == "Partner Assigned"
        assert update.description == "Skyline Jets has been assigned to fulfill your request. Notes: Gulfstream G650"
        assert update.metadata == {"partner_id": partner.id, "estimated_cost": 12000}
        mock_event_bus.assert_event_published("service_request.partner_assigned", {"company_name": "Skyline Jets"})
        mock_event_bus.assert_event_published("service_request.status_changed", {"new_status": "accepted"})

    async def test_reassignment_on_accepted_request(self, request_service, mock_repository, mock_event_bus, data_factory):
        request = await request_service.create_request(data_factory.make_client_id(), data_factory.make_request_create())
        first = mock_repository.set_partner(data_factory.make_partner_id(), "First Co")
        second = mock_repository.set_partner(data_factory.make_partner_id(), "Second Co")
        await request_service.assign_partner(request.id, first.id)
        mock_event_bus.clear()

        result = await request_service.assign_partner(request.id, second.id)

        assert result.success is True
        assert (await request_service.get_request(request.id)).partner_id == second.id
        mock_event_bus.assert_no_events_published("service_request.status_changed")

    @pytest.mark.parametrize("status", [PartnerStatus.PENDING, PartnerStatus.SUSPENDED, PartnerStatus.REJECTED])
    async def test_unapproved_partner(self, request_service, mock_repository, data_factory, status):
        request = await request_service.create_request(data_factory.make_client_id(), data_factory.make_request_create())
        partner = mock_repository.set_partner(data_factory.make_partner_id(), "Pending Co", status)

        result = await request_service.assign_partner(request.id, partner.id)

        assert result.error_code == "PARTNER_NOT_APPROVED"
        assert (await request_service.get_request(request.id)).status == S.PENDING

    async def test_failed_audit_entry_leaves_assignment_unapplied(
        self, request_service, mock_repository, mock_event_bus, data_factory
    ):
        request = await request_service.create_request(data_factory.make_client_id(), data_factory.make_request_create())
        partner = mock_repository.set_partner(data_factory.make_partner_id(), "Skyline Jets")
        mock_repository.fail_on["add_update"] = ConnectionError("database unavailable")

        result = await request_service.assign_partner(request.id, partner.id, actor_id="concierge_7")

        assert result.success is False
        stored = await request_service.get_request(request.id)
        assert (stored.status, stored.partner_id) == (S.PENDING, None)
        assert mock_repository.updates_for(request.id) == []
        mock_event_bus.assert_no_events_published("service_request.partner_assigned")

    async def test_unknown_partner(self, request_service, data_factory):
        request = await request_service.create_request(data_factory.make_client_id(), data_factory.make_request_create())
        result = await request_service.assign_partner(request.id, data_factory.make_partner_id())
        assert result.error == "Partner not found"

    async def test_cannot_assign_late_in_pipeline(self, request_service, mock_repository, data_factory):
        request = await request_service.create_request(data_factory.make_client_id(), data_factory.make_request_create())
        partner = mock_repository.set_partner(data_factory.make_partner_id(), "Late Co")
        await _walk(request_service, request.id, S.ACCEPTED, S.AWAITING_CONFIRMATION, S.FULFILLING)

        result = await request_service.assign_partner(request.id, partner.id)

        assert result.error_code == "INVALID_TRANSITION"


# =============================================================================
# 4. SLA & Partner Performance
# =============================================================================


@pytest.mark.component
@pytest.mark.asyncio
class TestSLAAndPerformance:

    async def test_first_concierge_update_is_the_response(self, mock_event_bus, data_factory):
        created = datetime(2026, 5, 4, 10, 0, tzinfo=timezone.utc)
        times = iter([created, created + timedelta(minutes=30), created + timedelta(hours=2)])
        repository = MockServiceRequestRepository(clock=lambda: next(times))
        service = ServiceRequestService(repository=repository, event_bus=mock_event_bus)

        request = await service.create_request(data_factory.make_client_id(), data_factory.make_request_create())
        await service.append_update(
            request.id,
            ServiceRequestUpdateCreate(
                update_type=UpdateType.MESSAGE, title="Client note", updated_by_role=UpdaterRole.CLIENT
            ),
        )
        await service.append_update(
            request.id,
            ServiceRequestUpdateCreate(
                update_type=UpdateType.MESSAGE, title="On it", updated_by_role=UpdaterRole.CONCIERGE
            ),
        )

        metrics = await service.get_request_sla(request.id, TierId.GOLD)

        assert metrics.actual_response_hours == 2
        assert metrics.is_within_sla is True

    async def test_sla_for_missing_request(self, request_service):
        with pytest.raises(ServiceRequestNotFoundError):
            await request_service.get_request_sla("missing", TierId.GOLD)

    async def test_partner_performance(self, request_service, mock_repository, data_factory):
        partner_id = data_factory.make_partner_id()
        mock_repository.add_commission(partner_id, 150.10, status="paid")
        mock_repository.add_commission(partner_id, 75.20, status="pending")
        mock_repository.add_commission(partner_id, 0.30, status="pending")
        mock_repository.add_commission(data_factory.make_partner_id(), 999)
        mock_repository.active_services[partner_id] = 3

        performance = await request_service.get_partner_performance(partner_id)

        assert performance.total_earnings == 225.6
        assert performance.pending_earnings == 75.5
        assert performance.completed_bookings == 1
        assert performance.active_services == 3
