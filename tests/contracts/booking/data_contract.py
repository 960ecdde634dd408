"""
Booking Service - Data Contract

Test data factory for booking_service.
Zero hardcoded data - all test data generated through factory methods.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from core.auth_dependencies import SessionContext
from microservices.booking_service.models import BookingRequest
from microservices.service_request_service.models import RequestPriority, ServiceCategory


class BookingTestDataFactory:
    """Test data factory for booking_service"""

    @staticmethod
    def make_user_id() -> str:
        return f"user_{uuid.uuid4().hex[:16]}"

    @staticmethod
    def make_session(user_id: Optional[str] = None) -> SessionContext:
        return SessionContext(
            user_id=user_id or BookingTestDataFactory.make_user_id(),
            email=f"member_{uuid.uuid4().hex[:6]}@example.com",
            access_token=f"tok_{uuid.uuid4().hex}",
        )

    @staticmethod
    def make_booking_request(
        category: ServiceCategory = ServiceCategory.CHAUFFEUR,
        priority: RequestPriority = RequestPriority.STANDARD,
        budget_max: Optional[float] = None,
        **overrides,
    ) -> BookingRequest:
        data = {
            "service_id": str(uuid.uuid4()),
            "partner_id": str(uuid.uuid4()),
            "category": category,
            "priority": priority,
            "budget_max": budget_max,
            "preferred_date": datetime.now(timezone.utc) + timedelta(days=7),
            "notes": "Airport pickup, two passengers",
        }
        data.update(overrides)
        return BookingRequest(**data)
