"""
Booking Service Factory

Factory for creating BookingService with real dependencies.
This is the ONLY module that imports concrete implementations.

The credit ledger and request store run in process over one shared
PostgreSQL pool.
"""

import logging
from typing import Optional

from core.config_manager import ConfigManager
from core.postgres_client import PostgresClient
from microservices.credit_service.credit_repository import CreditRepository
from microservices.credit_service.credit_service import CreditService
from microservices.service_request_service.service_request_repository import ServiceRequestRepository
from microservices.service_request_service.service_request_service import ServiceRequestService

from .booking_repository import BookingRepository
from .booking_service import BookingService

logger = logging.getLogger(__name__)


def create_booking_service(
    config: Optional[ConfigManager] = None,
    event_bus=None,
) -> BookingService:
    """
    Create BookingService with all real dependencies

    Args:
        config: Optional config manager (creates default if not provided)
        event_bus: Optional event bus shared by the booking, credit and request layers

    Returns:
        Fully initialized BookingService instance
    """
    if config is None:
        config = ConfigManager("booking_service")

    db = PostgresClient("booking_service", config=config)

    credit_ledger = CreditService(
        repository=CreditRepository(config=config, db=db),
        event_bus=event_bus,
        max_cas_attempts=config.get("credit_cas_max_attempts", 5),
    )
    request_store = ServiceRequestService(
        repository=ServiceRequestRepository(config=config, db=db),
        event_bus=event_bus,
    )

    logger.info("BookingService created with real dependencies")

    return BookingService(
        request_store=request_store,
        credit_ledger=credit_ledger,
        catalog_repository=BookingRepository(config=config, db=db),
        event_bus=event_bus,
        refund_on_cancel=config.get("refund_on_cancel", False),
    )


__all__ = ["create_booking_service"]
