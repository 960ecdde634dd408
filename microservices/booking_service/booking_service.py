"""
Booking Service - Business Logic Layer

Books partner services by composing costing, the request store and the
credit ledger.

Business Rules:
- Only signed-in members can book or cancel
- The charged amount is the quote from calculate_service_credit_cost
- Sufficiency is checked before any write
- If the debit fails, the just-created request is deleted
- Clients cancel only while the request is pending, in review or sourcing
- Credits are refunded on cancellation only when refund_on_cancel is enabled
"""

import logging
from typing import List, Optional, Union

from core.auth_dependencies import SessionContext
from microservices.credit_service.models import TransactionType
from microservices.membership_service.models import MemberContext
from microservices.membership_service.tier_catalog import is_unlimited_tier
from microservices.service_request_service.models import (
    RequestPriority,
    RequestStatus,
    ServiceRequestCreate,
    ServiceRequestUpdateCreate,
    UpdateType,
    UpdaterRole,
)
from microservices.service_request_service.pricing import calculate_service_credit_cost
from microservices.service_request_service.status_flow import is_client_cancellable

from .events.publishers import publish_booking_cancelled, publish_booking_created
from .models import BookingRequest, BookingResult, CancellationResult, PartnerService, ServiceCategory
from .protocols import (
    BookingNotFoundError,
    BookingServiceError,
    CancellationNotAllowedError,
    CatalogRepositoryProtocol,
    CreditLedgerProtocol,
    EventBusProtocol,
    InsufficientCreditsError,
    NotAuthenticatedError,
    NotAuthorizedError,
    RequestStoreProtocol,
)

logger = logging.getLogger(__name__)

BOOKING_TITLE = "Partner Service Booking"
SUBMITTED_TITLE = "Booking Request Submitted"
CANCELLED_TITLE = "Booking Cancelled"
IN_PROGRESS_ERROR = "Cannot cancel a request that is already in progress"


def _is_unlimited(member: MemberContext) -> bool:
    return member.is_member and is_unlimited_tier(member.tier)


class BookingService:
    """Partner booking orchestration"""

    def __init__(
        self,
        request_store: RequestStoreProtocol,
        credit_ledger: CreditLedgerProtocol,
        catalog_repository: CatalogRepositoryProtocol,
        event_bus: Optional[EventBusProtocol] = None,
        refund_on_cancel: bool = False,
    ):
        """
        Initialize booking service with injected dependencies

        Args:
            request_store: Service request store
            credit_ledger: Credit ledger
            catalog_repository: Partner service catalog
            event_bus: Optional event bus for publishing events
            refund_on_cancel: Refund charged credits when a client cancels
        """
        self.request_store = request_store
        self.credit_ledger = credit_ledger
        self.catalog_repository = catalog_repository
        self.event_bus = event_bus
        self.refund_on_cancel = refund_on_cancel

        logger.info(f"BookingService initialized (refund_on_cancel={refund_on_cancel})")

    # ====================
    # Catalog & Quotes
    # ====================

    async def fetch_services(self, category: Optional[ServiceCategory] = None) -> List[PartnerService]:
        return await self.catalog_repository.list_services(category)

    def get_booking_cost(
        self,
        member: MemberContext,
        category: Union[ServiceCategory, str],
        priority: Union[RequestPriority, str] = RequestPriority.STANDARD,
        budget_max: Optional[float] = None,
    ) -> int:
        """Credits the member would be charged; unlimited members pay nothing"""
        if _is_unlimited(member):
            return 0
        return calculate_service_credit_cost(category, priority, budget_max)

    async def can_afford(
        self,
        member: MemberContext,
        category: Union[ServiceCategory, str],
        priority: Union[RequestPriority, str] = RequestPriority.STANDARD,
        budget_max: Optional[float] = None,
    ) -> bool:
        if _is_unlimited(member):
            return True
        cost = self.get_booking_cost(member, category, priority, budget_max)
        account = await self.credit_ledger.fetch_credits(member)
        return (account.balance if account else 0) >= cost

    # ====================
    # Booking
    # ====================

    async def create_booking(
        self,
        session: Optional[SessionContext],
        member: Optional[MemberContext],
        booking: BookingRequest,
    ) -> BookingResult:
        """
        Create a booking: store a pending request and charge its credits.

        Args:
            session: Caller session, None when anonymous
            member: Caller's subscription state (no membership when None)
            booking: What to book

        Returns:
            BookingResult with request_id and credits_used on success
        """
        try:
            if session is None:
                raise NotAuthenticatedError("You must be logged in to book services")
            member = member or MemberContext(user_id=session.user_id)

            cost = calculate_service_credit_cost(booking.category, booking.priority, booking.budget_max)
            unlimited = _is_unlimited(member)

            if not unlimited:
                account = await self.credit_ledger.fetch_credits(member)
                balance = account.balance if account else 0
                if balance < cost:
                    raise InsufficientCreditsError(available=balance, required=cost)

            request = await self.request_store.create_request(
                session.user_id,
                ServiceRequestCreate(
                    title=BOOKING_TITLE,
                    description=booking.notes or "Service booking request",
                    category=booking.category,
                    priority=booking.priority,
                    budget_min=booking.budget_min,
                    budget_max=booking.budget_max,
                    deadline=booking.preferred_date,
                    partner_id=booking.partner_id,
                    requirements={
                        "service_id": booking.service_id,
                        "preferred_date": booking.preferred_date.isoformat() if booking.preferred_date else None,
                    },
                ),
            )

            # Unlimited members get a usage record with the balance unchanged
            debit = await self.credit_ledger.use_credit(
                member, cost, f"Booking: {booking.category.value} service", request.id
            )
            if not debit.success:
                await self._rollback(request.id)
                logger.warning(f"Booking debit failed for {session.user_id}: {debit.error}")
                return BookingResult(success=False, error=debit.error, error_code=debit.error_code)

            credits_used = 0 if debit.is_unlimited else cost

            description = "Your booking request has been submitted and is being processed."
            if credits_used > 0:
                description += f" {credits_used} credits were used."
            try:
                await self.request_store.append_update(
                    request.id,
                    ServiceRequestUpdateCreate(
                        update_type=UpdateType.STATUS_CHANGE,
                        new_status=RequestStatus.PENDING,
                        title=SUBMITTED_TITLE,
                        description=description,
                        updated_by_role=UpdaterRole.SYSTEM,
                        metadata={
                            "credits_used": credits_used,
                            "service_id": booking.service_id,
                            "partner_id": booking.partner_id,
                        },
                    ),
                )
            except Exception as e:
                logger.error(f"Booking {request.id} created but submission update failed: {e}", exc_info=True)

            logger.info(f"Booking {request.id} created for {session.user_id}: {credits_used} credits")
            await publish_booking_created(
                self.event_bus,
                request.id,
                session.user_id,
                booking.service_id,
                booking.partner_id,
                booking.category.value,
                booking.priority.value,
                credits_used,
                is_unlimited=debit.is_unlimited,
            )
            return BookingResult(success=True, request_id=request.id, credits_used=credits_used)

        except BookingServiceError as e:
            logger.warning(f"Booking rejected: {e}")
            return BookingResult(success=False, error=str(e), error_code=e.error_code)
        except Exception as e:
            logger.error(f"Booking error: {e}", exc_info=True)
            return BookingResult(
                success=False, error="Failed to create booking", error_code=BookingServiceError.error_code
            )

    async def _rollback(self, request_id: str) -> None:
        """Delete a request whose debit failed"""
        try:
            await self.request_store.delete_request(request_id)
            logger.info(f"Rolled back booking request {request_id}")
        except Exception as e:
            logger.error(f"Failed to roll back booking request {request_id}: {e}", exc_info=True)

    # ====================
    # Cancellation
    # ====================

    async def cancel_booking(
        self,
        session: Optional[SessionContext],
        request_id: str,
        reason: Optional[str] = None,
    ) -> CancellationResult:
        """Cancel the caller's booking while it is still cancellable"""
        try:
            if session is None:
                raise NotAuthenticatedError("You must be logged in to cancel bookings")

            request = await self.request_store.get_request(request_id)
            if request is None:
                raise BookingNotFoundError("Request not found")
            if request.client_id != session.user_id:
                raise NotAuthorizedError("Not authorized to cancel this request")
            if not is_client_cancellable(request.status):
                raise CancellationNotAllowedError(IN_PROGRESS_ERROR)

            previous = request.status
            cancelled = await self.request_store.transition_status(
                request_id,
                previous,
                RequestStatus.CANCELLED,
                ServiceRequestUpdateCreate(
                    update_type=UpdateType.CANCELLATION,
                    previous_status=previous,
                    new_status=RequestStatus.CANCELLED,
                    title=CANCELLED_TITLE,
                    description=reason or "Booking cancelled by client",
                    updated_by=session.user_id,
                    updated_by_role=UpdaterRole.CLIENT,
                ),
            )
            if cancelled is None:
                raise CancellationNotAllowedError(IN_PROGRESS_ERROR)

            refunded = await self._refund(session.user_id, request_id) if self.refund_on_cancel else 0

            logger.info(f"Booking {request_id} cancelled by {session.user_id} (refunded {refunded})")
            await publish_booking_cancelled(
                self.event_bus, request_id, session.user_id, previous.value, reason, refunded
            )
            return CancellationResult(success=True, refunded_credits=refunded)

        except BookingServiceError as e:
            logger.warning(f"Cancellation rejected for {request_id}: {e}")
            return CancellationResult(success=False, error=str(e), error_code=e.error_code)
        except Exception as e:
            logger.error(f"Cancellation error for {request_id}: {e}", exc_info=True)
            return CancellationResult(
                success=False, error="Failed to cancel booking", error_code=BookingServiceError.error_code
            )

    async def _refund(self, user_id: str, request_id: str) -> int:
        """Refund a cancelled booking; the cancellation stands even if the refund fails"""
        try:
            credits = await self.credit_ledger.credits_charged_for_request(user_id, request_id)
        except Exception as e:
            logger.error(f"Could not read charges for {request_id}, no refund issued: {e}", exc_info=True)
            return 0
        if credits <= 0:
            return 0

        result = await self.credit_ledger.add_credits(
            user_id, credits, TransactionType.REFUND, f"Refund: cancelled booking {request_id}"
        )
        if not result.success:
            logger.error(f"Refund of {credits} credits for {request_id} failed: {result.error}")
            return 0
        return credits


__all__ = ["BookingService"]
