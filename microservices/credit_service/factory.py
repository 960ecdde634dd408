"""
Credit Service Factory

Factory for creating CreditService with real dependencies.
This is the ONLY module that imports concrete implementations.
"""

import logging
from typing import Optional

from core.config_manager import ConfigManager
from microservices.membership_service.models import MemberContext, TierId
from microservices.membership_service.protocols import SubscriptionClientProtocol

from .credit_repository import CreditRepository
from .credit_service import CreditService, TierLookup

logger = logging.getLogger(__name__)


def create_credit_service(
    config: Optional[ConfigManager] = None,
    event_bus=None,
) -> CreditService:
    """
    Create CreditService with all real dependencies

    Args:
        config: Optional config manager (creates default if not provided)
        event_bus: Optional event bus for event publishing

    Returns:
        Fully initialized CreditService instance
    """
    if config is None:
        config = ConfigManager("credit_service")

    repository = CreditRepository(config=config)

    logger.info("CreditService created with real dependencies")

    return CreditService(
        repository=repository,
        event_bus=event_bus,
        max_cas_attempts=config.get("credit_cas_max_attempts", 5),
    )


def create_tier_lookup(subscription_client: SubscriptionClientProtocol) -> TierLookup:
    """Tier lookup for the monthly reset, backed by the payment backend"""

    async def lookup(user_id: str) -> Optional[TierId]:
        status = await subscription_client.check_subscription(None, user_id=user_id)
        member = MemberContext.from_subscription(user_id, status)
        return member.tier if member.is_member else None

    return lookup


__all__ = ["create_credit_service", "create_tier_lookup"]
