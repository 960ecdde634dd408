"""
Membership Service - Data Contract

Test data factory for membership_service.
Zero hardcoded data - all test data generated through factory methods.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from microservices.membership_service.models import (
    MemberContext,
    SubscriptionStatus,
    TierId,
    UsageMetrics,
)


class MembershipTestDataFactory:
    """
    Test data factory for membership_service.

    Factory methods are prefixed with make_ for valid data.
    """

    @staticmethod
    def make_user_id() -> str:
        """Generate valid user ID"""
        return f"user_{uuid.uuid4().hex[:16]}"

    @staticmethod
    def make_access_token() -> str:
        return f"tok_{uuid.uuid4().hex}"

    @staticmethod
    def make_member(
        tier: TierId = TierId.SILVER,
        user_id: Optional[str] = None,
        is_trial: bool = False,
        trial_end: Optional[datetime] = None,
    ) -> MemberContext:
        """Generate an active (or trial) member on a tier"""
        return MemberContext(
            user_id=user_id or MembershipTestDataFactory.make_user_id(),
            subscribed=not is_trial,
            tier=tier,
            product_id=f"prod_{uuid.uuid4().hex[:12]}",
            subscription_end=datetime.now(timezone.utc) + timedelta(days=30),
            is_trial=is_trial,
            trial_end=trial_end,
        )

    @staticmethod
    def make_non_member(user_id: Optional[str] = None) -> MemberContext:
        """Generate a signed-in user without a subscription"""
        return MemberContext(user_id=user_id or MembershipTestDataFactory.make_user_id())

    @staticmethod
    def make_subscription_status(tier: Optional[TierId] = TierId.GOLD, **overrides) -> SubscriptionStatus:
        data = {
            "subscribed": tier is not None,
            "tier": tier,
            "subscription_end": datetime.now(timezone.utc) + timedelta(days=30),
        }
        data.update(overrides)
        return SubscriptionStatus(**data)

    @staticmethod
    def make_usage_metrics(
        requests_this_month: int = 0,
        credits_used: int = 0,
        credits_remaining: int = 0,
        completed_requests: int = 0,
    ) -> UsageMetrics:
        return UsageMetrics(
            requests_this_month=requests_this_month,
            credits_used=credits_used,
            credits_remaining=credits_remaining,
            completed_requests=completed_requests,
        )
