"""
Service Request Service Factory

Factory for creating ServiceRequestService with real dependencies.
This is the ONLY module that imports concrete implementations.
"""

import logging
from typing import Optional

from core.config_manager import ConfigManager

from .service_request_repository import ServiceRequestRepository
from .service_request_service import ServiceRequestService

logger = logging.getLogger(__name__)


def create_service_request_service(
    config: Optional[ConfigManager] = None,
    event_bus=None,
) -> ServiceRequestService:
    """
    Create ServiceRequestService with all real dependencies

    Args:
        config: Optional config manager (creates default if not provided)
        event_bus: Optional event bus for event publishing

    Returns:
        Fully initialized ServiceRequestService instance
    """
    if config is None:
        config = ConfigManager("service_request_service")

    repository = ServiceRequestRepository(config=config)

    logger.info("ServiceRequestService created with real dependencies")

    return ServiceRequestService(repository=repository, event_bus=event_bus)


__all__ = ["create_service_request_service"]
