"""
Booking Service Component Tests

Tests BookingService composed with the credit ledger and request pipeline.

Coverage:
1. Quotes and catalog
2. Booking (happy path, insufficient credits, unlimited tier, rollback)
3. Cancellation (window, ownership, refunds)

Usage:
    pytest tests/component/booking -v
"""

import pytest

from microservices.booking_service.models import PartnerService
from microservices.credit_service.models import TransactionType
from microservices.membership_service.models import TierId
from microservices.service_request_service.models import (
    RequestPriority,
    RequestStatus,
    ServiceCategory,
    UpdateType,
    UpdaterRole,
)
from microservices.service_request_service.status_flow import CLIENT_CANCELLABLE_STATUSES


def _usage(credit_repository, user_id):
    return [t for t in credit_repository.transactions_for(user_id) if t.transaction_type == TransactionType.USAGE]


# =============================================================================
# 1. Quotes & Catalog
# =============================================================================


@pytest.mark.component
@pytest.mark.asyncio
class TestQuotes:

    async def test_quote_for_metered_member(self, booking_service, member_factory):
        member = member_factory.make_member(TierId.GOLD)
        assert booking_service.get_booking_cost(member, ServiceCategory.CHAUFFEUR) == 5
        assert booking_service.get_booking_cost(member, ServiceCategory.CHAUFFEUR, RequestPriority.URGENT) == 10

    async def test_unlimited_member_pays_nothing(self, booking_service, member_factory):
        member = member_factory.make_member(TierId.PLATINUM)
        assert booking_service.get_booking_cost(member, ServiceCategory.COLLECTIBLES, RequestPriority.IMMEDIATE) == 0
        assert await booking_service.can_afford(member, ServiceCategory.COLLECTIBLES) is True

    async def test_can_afford(self, booking_service, credit_repository, member_factory):
        member = member_factory.make_member(TierId.SILVER)
        credit_repository.set_account(member.user_id, 5)

        assert await booking_service.can_afford(member, ServiceCategory.CHAUFFEUR) is True
        assert await booking_service.can_afford(member, ServiceCategory.SECURITY) is False

    async def test_non_member_cannot_afford(self, booking_service, member_factory):
        assert await booking_service.can_afford(member_factory.make_non_member(), ServiceCategory.DINING) is False

    async def test_catalog_lists_active_services(self, booking_service, catalog_repository):
        catalog_repository.services = [
            PartnerService(id="svc_1", partner_id="p1", title="Airport transfer", category=ServiceCategory.CHAUFFEUR),
            PartnerService(id="svc_2", partner_id="p2", title="Chef's table", category=ServiceCategory.DINING),
            PartnerService(
                id="svc_3", partner_id="p3", title="Retired", category=ServiceCategory.DINING, is_active=False
            ),
        ]

        assert len(await booking_service.fetch_services()) == 2
        dining = await booking_service.fetch_services(ServiceCategory.DINING)
        assert [s.id for s in dining] == ["svc_2"]


# =============================================================================
# 2. Booking
# =============================================================================


@pytest.mark.component
@pytest.mark.asyncio
class TestCreateBooking:

    async def test_gold_member_books_chauffeur(
        self, booking_service, credit_repository, request_repository, mock_event_bus, member_factory, data_factory
    ):
        member = member_factory.make_member(TierId.GOLD)
        session = data_factory.make_session(member.user_id)
        booking = data_factory.make_booking_request(ServiceCategory.CHAUFFEUR)

        result = await booking_service.create_booking(session, member, booking)

        assert result.success is True
        assert result.credits_used == 5
        assert credit_repository.accounts[member.user_id].balance == 45

        [usage] = _usage(credit_repository, member.user_id)
        assert usage.amount == -5
        assert usage.balance_after == 45
        assert usage.service_request_id == result.request_id
        assert usage.description == "Booking: chauffeur service"

        request = request_repository.requests[result.request_id]
        assert request.status == RequestStatus.PENDING
        assert request.client_id == member.user_id
        assert request.title == "Partner Service Booking"
        assert request.partner_id == booking.partner_id
        assert request.requirements["service_id"] == booking.service_id
        assert request.deadline == booking.preferred_date

        [update] = request_repository.updates_for(result.request_id)
        assert update.title == "Booking Request Submitted"
        assert update.description == (
            "Your booking request has been submitted and is being processed. 5 credits were used."
        )
        assert update.updated_by_role == UpdaterRole.SYSTEM
        assert update.metadata["credits_used"] == 5

        mock_event_bus.assert_event_published(
            "booking.created", {"request_id": result.request_id, "credits_used": 5, "category": "chauffeur"}
        )

    async def test_insufficient_credits_creates_nothing(
        self, booking_service, credit_repository, request_repository, mock_event_bus, member_factory, data_factory
    ):
        member = member_factory.make_member(TierId.SILVER)
        credit_repository.set_account(member.user_id, 2)

        result = await booking_service.create_booking(
            data_factory.make_session(member.user_id), member, data_factory.make_booking_request()
        )

        assert result.success is False
        assert result.error_code == "INSUFFICIENT_CREDITS"
        assert result.error == "Insufficient credits. You need 5 credits but only have 2."
        assert request_repository.requests == {}
        assert credit_repository.accounts[member.user_id].balance == 2
        assert _usage(credit_repository, member.user_id) == []
        mock_event_bus.assert_no_events_published("booking.created")

    async def test_platinum_member_is_not_charged(
        self, booking_service, credit_repository, request_repository, member_factory, data_factory
    ):
        member = member_factory.make_member(TierId.PLATINUM)
        booking = data_factory.make_booking_request(ServiceCategory.CHAUFFEUR)

        result = await booking_service.create_booking(data_factory.make_session(member.user_id), member, booking)

        assert result.success is True
        assert result.credits_used == 0
        assert credit_repository.accounts[member.user_id].balance == 999
        [usage] = _usage(credit_repository, member.user_id)
        assert usage.amount == -5
        assert usage.is_unlimited_usage
        [update] = request_repository.updates_for(result.request_id)
        assert update.description == "Your booking request has been submitted and is being processed."
        assert (await booking_service.credit_ledger.reconcile(member.user_id)).balanced is True

    @pytest.mark.parametrize("category,priority,budget_max", [
        (ServiceCategory.DINING, RequestPriority.STANDARD, None),
        (ServiceCategory.CHAUFFEUR, RequestPriority.PRIORITY, None),
        (ServiceCategory.PRIVATE_AVIATION, RequestPriority.STANDARD, 30000),
        (ServiceCategory.SECURITY, RequestPriority.URGENT, 60000),
    ])
    async def test_charge_equals_quote(
        self, booking_service, credit_repository, member_factory, data_factory, category, priority, budget_max
    ):
        member = member_factory.make_member(TierId.GOLD)
        quote = booking_service.get_booking_cost(member, category, priority, budget_max)

        result = await booking_service.create_booking(
            data_factory.make_session(member.user_id),
            member,
            data_factory.make_booking_request(category, priority, budget_max),
        )

        assert result.success is True
        assert result.credits_used == quote
        assert credit_repository.accounts[member.user_id].balance == 50 - quote

    async def test_anonymous_caller(self, booking_service, data_factory):
        result = await booking_service.create_booking(None, None, data_factory.make_booking_request())

        assert result.success is False
        assert result.error_code == "NOT_AUTHENTICATED"
        assert result.error == "You must be logged in to book services"

    async def test_non_member_has_no_credits(self, booking_service, request_repository, data_factory):
        result = await booking_service.create_booking(data_factory.make_session(), None, data_factory.make_booking_request())

        assert result.error_code == "INSUFFICIENT_CREDITS"
        assert request_repository.requests == {}

    async def test_failed_debit_rolls_back_request(
        self, booking_service, credit_repository, request_repository, mock_event_bus, member_factory, data_factory
    ):
        member = member_factory.make_member(TierId.GOLD)
        credit_repository.set_account(member.user_id, 50)
        credit_repository.force_conflicts(10)

        result = await booking_service.create_booking(
            data_factory.make_session(member.user_id), member, data_factory.make_booking_request()
        )

        assert result.success is False
        assert result.error_code == "REMOTE_FAILURE"
        assert request_repository.requests == {}
        assert request_repository.method_calls[-1][0] == "delete_request"
        assert credit_repository.accounts[member.user_id].balance == 50
        mock_event_bus.assert_no_events_published("booking.created")

    async def test_balance_drained_after_precheck(
        self, booking_service, credit_repository, request_repository, member_factory, data_factory
    ):
        member = member_factory.make_member(TierId.SILVER)
        credit_repository.set_account(member.user_id, 6)

        async def concurrent_booking(user_id):
            credit_repository.before_cas = None
            await credit_repository.apply_balance_change(
                user_id, 6, 3, {"amount": -3, "transaction_type": "usage", "description": "Other booking"}
            )

        credit_repository.before_cas = concurrent_booking
        result = await booking_service.create_booking(
            data_factory.make_session(member.user_id), member, data_factory.make_booking_request()
        )

        assert result.success is False
        assert result.error_code == "INSUFFICIENT_CREDITS"
        assert request_repository.requests == {}
        assert credit_repository.accounts[member.user_id].balance == 3

    async def test_submission_update_failure_keeps_booking(
        self, booking_service, credit_repository, request_repository, member_factory, data_factory
    ):
        member = member_factory.make_member(TierId.GOLD)
        request_repository.fail_on["add_update"] = ConnectionError("database unavailable")

        result = await booking_service.create_booking(
            data_factory.make_session(member.user_id), member, data_factory.make_booking_request()
        )

        assert result.success is True
        assert result.request_id in request_repository.requests
        assert credit_repository.accounts[member.user_id].balance == 45


# =============================================================================
# 3. Cancellation
# =============================================================================


async def _book(service, member, data_factory, category=ServiceCategory.CHAUFFEUR):
    session = data_factory.make_session(member.user_id)
    result = await service.create_booking(session, member, data_factory.make_booking_request(category))
    assert result.success, result.error
    return session, result


@pytest.mark.component
@pytest.mark.asyncio
class TestCancelBooking:

    async def test_cancel_pending_booking(
        self, booking_service, credit_repository, request_repository, mock_event_bus, member_factory, data_factory
    ):
        member = member_factory.make_member(TierId.GOLD)
        session, booked = await _book(booking_service, member, data_factory)

        result = await booking_service.cancel_booking(session, booked.request_id, "Plans changed")

        assert result.success is True
        assert result.refunded_credits == 0
        assert request_repository.requests[booked.request_id].status == RequestStatus.CANCELLED
        cancellation = request_repository.updates_for(booked.request_id)[-1]
        assert cancellation.update_type == UpdateType.CANCELLATION
        assert cancellation.title == "Booking Cancelled"
        assert cancellation.description == "Plans changed"
        assert cancellation.updated_by == member.user_id
        assert cancellation.updated_by_role == UpdaterRole.CLIENT
        assert credit_repository.accounts[member.user_id].balance == 45
        mock_event_bus.assert_event_published(
            "booking.cancelled", {"request_id": booked.request_id, "previous_status": "pending"}
        )

    async def test_default_cancellation_description(
        self, booking_service, request_repository, member_factory, data_factory
    ):
        member = member_factory.make_member(TierId.GOLD)
        session, booked = await _book(booking_service, member, data_factory)

        await booking_service.cancel_booking(session, booked.request_id)

        assert request_repository.updates_for(booked.request_id)[-1].description == "Booking cancelled by client"

    @pytest.mark.parametrize("status", list(RequestStatus))
    async def test_cancellation_window(self, booking_service, request_repository, member_factory, data_factory, status):
        member = member_factory.make_member(TierId.GOLD)
        session, booked = await _book(booking_service, member, data_factory)
        request_repository.force_status(booked.request_id, status)

        result = await booking_service.cancel_booking(session, booked.request_id)

        if status in CLIENT_CANCELLABLE_STATUSES:
            assert result.success is True
            assert request_repository.requests[booked.request_id].status == RequestStatus.CANCELLED
        else:
            assert result.success is False
            assert result.error_code == "CANCELLATION_NOT_ALLOWED"
            assert request_repository.requests[booked.request_id].status == status

    async def test_fulfilling_booking_cannot_be_cancelled(
        self, booking_service, request_repository, member_factory, data_factory
    ):
        member = member_factory.make_member(TierId.GOLD)
        session, booked = await _book(booking_service, member, data_factory)
        request_repository.force_status(booked.request_id, RequestStatus.FULFILLING)

        result = await booking_service.cancel_booking(session, booked.request_id)

        assert result.error == "Cannot cancel a request that is already in progress"
        assert len(request_repository.updates_for(booked.request_id)) == 1

    async def test_status_moved_during_cancellation(
        self, booking_service, request_repository, member_factory, data_factory
    ):
        member = member_factory.make_member(TierId.GOLD)
        session, booked = await _book(booking_service, member, data_factory)
        original_transition = request_repository.transition_status

        async def racing_transition(request_id, expected_status, new_status, update, partner_id=None):
            # A concierge accepts the request between the check and the write
            request_repository.force_status(request_id, RequestStatus.ACCEPTED)
            return await original_transition(request_id, expected_status, new_status, update, partner_id)

        request_repository.transition_status = racing_transition
        result = await booking_service.cancel_booking(session, booked.request_id)

        assert result.error_code == "CANCELLATION_NOT_ALLOWED"
        assert request_repository.requests[booked.request_id].status == RequestStatus.ACCEPTED
        assert len(request_repository.updates_for(booked.request_id)) == 1

    async def test_failed_audit_entry_leaves_booking_uncancelled(
        self, booking_service, credit_repository, request_repository, mock_event_bus, member_factory, data_factory
    ):
        member = member_factory.make_member(TierId.GOLD)
        session, booked = await _book(booking_service, member, data_factory)
        request_repository.fail_on["add_update"] = ConnectionError("database unavailable")

        result = await booking_service.cancel_booking(session, booked.request_id)

        assert result.success is False
        assert result.error == "Failed to cancel booking"
        assert request_repository.requests[booked.request_id].status == RequestStatus.PENDING
        updates = request_repository.updates_for(booked.request_id)
        assert [u.update_type for u in updates] == [UpdateType.STATUS_CHANGE]
        assert credit_repository.accounts[member.user_id].balance == 45
        mock_event_bus.assert_no_events_published("booking.cancelled")

        request_repository.fail_on.clear()
        retried = await booking_service.cancel_booking(session, booked.request_id)

        assert retried.success is True
        assert request_repository.requests[booked.request_id].status == RequestStatus.CANCELLED
        assert request_repository.updates_for(booked.request_id)[-1].update_type == UpdateType.CANCELLATION

    async def test_only_owner_can_cancel(self, booking_service, request_repository, member_factory, data_factory):
        member = member_factory.make_member(TierId.GOLD)
        _, booked = await _book(booking_service, member, data_factory)

        result = await booking_service.cancel_booking(data_factory.make_session(), booked.request_id)

        assert result.error_code == "NOT_AUTHORIZED"
        assert request_repository.requests[booked.request_id].status == RequestStatus.PENDING

    async def test_unknown_request(self, booking_service, data_factory):
        result = await booking_service.cancel_booking(data_factory.make_session(), "missing")
        assert result.error_code == "NOT_FOUND"
        assert result.error == "Request not found"

    async def test_anonymous_cancel(self, booking_service):
        result = await booking_service.cancel_booking(None, "any")
        assert result.error_code == "NOT_AUTHENTICATED"
        assert result.error == "You must be logged in to cancel bookings"

    async def test_refund_on_cancel(
        self, refunding_booking_service, credit_repository, mock_event_bus, member_factory, data_factory
    ):
        member = member_factory.make_member(TierId.GOLD)
        session, booked = await _book(refunding_booking_service, member, data_factory)
        assert credit_repository.accounts[member.user_id].balance == 45

        result = await refunding_booking_service.cancel_booking(session, booked.request_id)

        assert result.refunded_credits == 5
        assert credit_repository.accounts[member.user_id].balance == 50
        refund = credit_repository.transactions_for(member.user_id)[-1]
        assert refund.transaction_type == TransactionType.REFUND
        assert refund.amount == 5
        mock_event_bus.assert_event_published("credit.refunded", {"amount": 5})
        mock_event_bus.assert_event_published("booking.cancelled", {"refunded_credits": 5})

    async def test_refund_comes_from_ledger_when_submission_update_is_missing(
        self, refunding_booking_service, credit_repository, request_repository, member_factory, data_factory
    ):
        member = member_factory.make_member(TierId.GOLD)
        request_repository.fail_on["add_update"] = ConnectionError("database unavailable")
        session, booked = await _book(refunding_booking_service, member, data_factory)
        request_repository.fail_on.clear()
        assert request_repository.updates_for(booked.request_id) == []

        result = await refunding_booking_service.cancel_booking(session, booked.request_id)

        assert result.success is True
        assert result.refunded_credits == booked.credits_used == 5
        assert credit_repository.accounts[member.user_id].balance == 50

    async def test_refund_covers_only_the_cancelled_booking(
        self, refunding_booking_service, credit_repository, member_factory, data_factory
    ):
        member = member_factory.make_member(TierId.GOLD)
        session, first = await _book(refunding_booking_service, member, data_factory)
        _, second = await _book(refunding_booking_service, member, data_factory, ServiceCategory.SECURITY)
        assert credit_repository.accounts[member.user_id].balance == 37

        result = await refunding_booking_service.cancel_booking(session, second.request_id)

        assert result.refunded_credits == 8
        assert credit_repository.accounts[member.user_id].balance == 45
        assert first.request_id != second.request_id

    async def test_unlimited_booking_refunds_nothing(
        self, refunding_booking_service, credit_repository, member_factory, data_factory
    ):
        member = member_factory.make_member(TierId.PLATINUM)
        session, booked = await _book(refunding_booking_service, member, data_factory)

        result = await refunding_booking_service.cancel_booking(session, booked.request_id)

        assert result.success is True
        assert result.refunded_credits == 0
        assert credit_repository.accounts[member.user_id].balance == 999

    async def test_failed_refund_keeps_cancellation(
        self, refunding_booking_service, credit_repository, request_repository, member_factory, data_factory
    ):
        member = member_factory.make_member(TierId.GOLD)
        session, booked = await _book(refunding_booking_service, member, data_factory)
        credit_repository.force_conflicts(10)

        result = await refunding_booking_service.cancel_booking(session, booked.request_id)

        assert result.success is True
        assert result.refunded_credits == 0
        assert request_repository.requests[booked.request_id].status == RequestStatus.CANCELLED
        assert credit_repository.accounts[member.user_id].balance == 45
