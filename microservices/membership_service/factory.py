"""
Membership Service Factory

Factory for creating MembershipService with real dependencies.
This is the ONLY module that imports concrete implementations.
"""

import logging
from typing import Optional

from core.config_manager import ConfigManager

from .membership_repository import MembershipRepository
from .membership_service import MembershipService

logger = logging.getLogger(__name__)


def create_subscription_client(config: ConfigManager):
    """Payment backend client shared by services that need member context"""
    from .clients.subscription_client import SubscriptionClient

    return SubscriptionClient(config=config)


def create_membership_service(
    config: Optional[ConfigManager] = None,
    event_bus=None,
    subscription_client=None,
) -> MembershipService:
    """
    Create MembershipService with all real dependencies

    Args:
        config: Optional config manager (creates default if not provided)
        event_bus: Optional event bus for event publishing
        subscription_client: Optional payment backend client (creates default if not provided)

    Returns:
        Fully initialized MembershipService instance
    """
    if config is None:
        config = ConfigManager("membership_service")

    repository = MembershipRepository(config=config)

    if subscription_client is None:
        subscription_client = create_subscription_client(config)
        logger.info("SubscriptionClient initialized for membership service")

    logger.info("MembershipService created with real dependencies")

    return MembershipService(
        repository=repository,
        subscription_client=subscription_client,
        event_bus=event_bus,
    )


__all__ = ["create_membership_service", "create_subscription_client"]
