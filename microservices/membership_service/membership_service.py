"""
Membership Service Business Logic

Tier automation for concierge members.

Business Rules:
- Tier access: a category is usable iff the tier allows it or the tier is unlimited
- Usage metrics cover the calendar month (UTC) containing "now"
- Upgrade advice comes from an ordered rules table, first match wins
- Only tiers strictly above the current tier can be purchased
- Trial days remaining are rounded up and never negative
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple, Union

from .events.publishers import publish_checkout_started, publish_upgrade_recommended
from .models import (
    BillingPeriod,
    MemberContext,
    RedirectResponse,
    ServiceAccessResult,
    ServiceCategory,
    TierBenefits,
    TierId,
    TierResponse,
    TrialStatusResponse,
    UpgradeCheckResult,
    UpgradeRecommendation,
    UsageMetrics,
)
from .protocols import (
    EventBusProtocol,
    InvalidUpgradeError,
    MembershipRepositoryProtocol,
    MembershipServiceError,
    RemoteFailureError,
    SubscriptionClientProtocol,
    TierNotFoundError,
)
from .tier_catalog import (
    MEMBERSHIP_TIERS,
    TIER_ORDER,
    can_access_service,
    get_tier_benefits,
    get_tier_by_id,
    minimum_tier_for,
    next_tier,
    tiers_above,
)
from .upgrade_rules import NO_DATA_REASON, evaluate_upgrade_rules

logger = logging.getLogger(__name__)

MEMBERSHIP_REQUIRED_REASON = "Membership required to access concierge services"


def month_window(now: datetime) -> Tuple[datetime, datetime]:
    """[start, end) of the calendar month containing now, in UTC"""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    start = datetime(now.year, now.month, 1, tzinfo=timezone.utc)
    if now.month == 12:
        end = datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(now.year, now.month + 1, 1, tzinfo=timezone.utc)
    return start, end


class MembershipService:
    """Membership tier automation"""

    def __init__(
        self,
        repository: MembershipRepositoryProtocol,
        subscription_client: Optional[SubscriptionClientProtocol] = None,
        event_bus: Optional[EventBusProtocol] = None,
    ):
        """
        Initialize membership service with injected dependencies

        Args:
            repository: Usage queries
            subscription_client: Payment backend client
            event_bus: Optional event bus for publishing events
        """
        self.repository = repository
        self.subscription_client = subscription_client
        self.event_bus = event_bus

        logger.info("MembershipService initialized with dependency injection")

    # ====================
    # Catalog
    # ====================

    def list_tiers(self) -> List[TierResponse]:
        return [MEMBERSHIP_TIERS[tier_id].to_response() for tier_id in TIER_ORDER]

    def get_tier(self, tier_id: Union[TierId, str]) -> TierResponse:
        tier = get_tier_by_id(tier_id)
        if tier is None:
            raise TierNotFoundError(f"Unknown tier: {tier_id}")
        return tier.to_response()

    def get_tier_benefits(self, tier_id: Union[TierId, str, None]) -> TierBenefits:
        return get_tier_benefits(tier_id)

    # ====================
    # Member Context
    # ====================

    async def get_member_context(self, user_id: str, access_token: Optional[str] = None) -> MemberContext:
        """Resolve subscription state through the payment backend"""
        if not self.subscription_client:
            raise RemoteFailureError("Subscription backend not configured")
        status = await self.subscription_client.check_subscription(access_token, user_id=user_id)
        return MemberContext.from_subscription(user_id, status)

    # ====================
    # Access
    # ====================

    def check_service_access(
        self, member: Optional[MemberContext], category: ServiceCategory
    ) -> ServiceAccessResult:
        """Whether the member's tier can use a category, and the lowest tier that can"""
        required = minimum_tier_for(category)
        if member is None or not member.is_member:
            return ServiceAccessResult(has_access=False, required_tier=required)
        return ServiceAccessResult(
            has_access=can_access_service(member.tier, category),
            required_tier=required,
        )

    def check_upgrade_needed(
        self, member: Optional[MemberContext], category: ServiceCategory
    ) -> UpgradeCheckResult:
        if member is None or not member.is_member:
            return UpgradeCheckResult(
                needs_upgrade=True,
                suggested_tier=TierId.SILVER,
                reason=MEMBERSHIP_REQUIRED_REASON,
            )

        if not can_access_service(member.tier, category):
            return UpgradeCheckResult(
                needs_upgrade=True,
                suggested_tier=next_tier(member.tier) or TierId.PLATINUM,
                reason=f"{ServiceCategory(category).value.replace('_', ' ')} requires a higher membership tier",
            )

        return UpgradeCheckResult(needs_upgrade=False)

    def available_upgrades(self, member: Optional[MemberContext]) -> List[TierResponse]:
        current = member.tier if member is not None and member.is_member else None
        return [MEMBERSHIP_TIERS[tier_id].to_response() for tier_id in tiers_above(current)]

    # ====================
    # Usage & Advice
    # ====================

    async def get_usage_metrics(self, user_id: str, now: Optional[datetime] = None) -> UsageMetrics:
        """Usage for the calendar month containing now"""
        start, end = month_window(now or datetime.now(timezone.utc))

        requests_this_month = await self.repository.count_requests(user_id, start, end)
        completed_requests = await self.repository.count_requests(user_id, start, end, status="completed")
        credits_used = await self.repository.sum_credit_usage(user_id, start, end)
        balance = await self.repository.get_credit_balance(user_id)

        return UsageMetrics(
            requests_this_month=requests_this_month,
            credits_used=credits_used,
            credits_remaining=max(balance or 0, 0),
            completed_requests=completed_requests,
            average_response_time=0,
            period_start=start,
            period_end=end,
        )

    async def get_upgrade_recommendation(
        self,
        member: Optional[MemberContext],
        metrics: Optional[UsageMetrics] = None,
        now: Optional[datetime] = None,
    ) -> UpgradeRecommendation:
        """Apply the upgrade rules to the member's usage this month"""
        if member is None or not member.is_member:
            return UpgradeRecommendation(should_upgrade=False, reason=NO_DATA_REASON)

        if metrics is None:
            try:
                metrics = await self.get_usage_metrics(member.user_id, now=now)
            except Exception as e:
                logger.error(f"Failed to load usage metrics for {member.user_id}: {e}", exc_info=True)
                return UpgradeRecommendation(should_upgrade=False, reason=NO_DATA_REASON)

        recommendation = evaluate_upgrade_rules(member.tier, metrics)

        if recommendation.should_upgrade:
            logger.info(
                f"Upgrade recommended for {member.user_id}: {member.tier.value} -> "
                f"{recommendation.recommended_tier.value if recommendation.recommended_tier else None} ({recommendation.rule})"
            )
            await publish_upgrade_recommended(
                self.event_bus,
                user_id=member.user_id,
                current_tier=member.tier.value,
                recommended_tier=recommendation.recommended_tier.value if recommendation.recommended_tier else None,
                rule=recommendation.rule,
                reason=recommendation.reason,
            )
        return recommendation

    # ====================
    # Checkout & Portal
    # ====================

    async def initiate_upgrade(
        self,
        member: MemberContext,
        tier_id: Union[TierId, str],
        billing_period: BillingPeriod = BillingPeriod.MONTHLY,
        access_token: Optional[str] = None,
    ) -> RedirectResponse:
        """Open a checkout for a higher tier"""
        try:
            target = get_tier_by_id(tier_id)
            if target is None:
                raise TierNotFoundError(f"Unknown tier: {tier_id}")

            current = member.tier if member.is_member else None
            if target.id not in tiers_above(current):
                raise InvalidUpgradeError("Already on this tier or higher")

            if not self.subscription_client:
                raise RemoteFailureError("Subscription backend not configured")

            price_id = target.annual_price_id if billing_period == BillingPeriod.ANNUAL else target.monthly_price_id
            result = await self.subscription_client.create_checkout(price_id, access_token)

            await publish_checkout_started(
                self.event_bus,
                user_id=member.user_id,
                current_tier=current.value if current else None,
                target_tier=target.id.value,
                billing_period=BillingPeriod(billing_period).value,
                price_id=price_id,
            )
            logger.info(f"Checkout created for {member.user_id}: {target.id.value} ({billing_period})")
            return RedirectResponse(success=True, url=result["url"])

        except MembershipServiceError as e:
            logger.warning(f"Upgrade checkout failed for {member.user_id}: {e}")
            return RedirectResponse(success=False, error=str(e), error_code=e.error_code)
        except Exception as e:
            logger.error(f"Unexpected checkout error for {member.user_id}: {e}", exc_info=True)
            return RedirectResponse(success=False, error="Failed to start checkout", error_code="REMOTE_FAILURE")

    async def open_customer_portal(self, access_token: Optional[str]) -> RedirectResponse:
        try:
            if not self.subscription_client:
                raise RemoteFailureError("Subscription backend not configured")
            result = await self.subscription_client.customer_portal(access_token)
            return RedirectResponse(success=True, url=result["url"])
        except MembershipServiceError as e:
            logger.warning(f"Customer portal failed: {e}")
            return RedirectResponse(success=False, error=str(e), error_code=e.error_code)
        except Exception as e:
            logger.error(f"Unexpected customer portal error: {e}", exc_info=True)
            return RedirectResponse(success=False, error="Failed to open customer portal", error_code="REMOTE_FAILURE")

    # ====================
    # Trial
    # ====================

    def trial_days_remaining(self, member: MemberContext, now: Optional[datetime] = None) -> int:
        if not member.is_trial or member.trial_end is None:
            return 0
        now = now or datetime.now(timezone.utc)
        trial_end = member.trial_end
        if trial_end.tzinfo is None:
            trial_end = trial_end.replace(tzinfo=timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        remaining = (trial_end - now) / timedelta(days=1)
        return max(math.ceil(remaining), 0)

    def get_trial_status(self, member: MemberContext, now: Optional[datetime] = None) -> TrialStatusResponse:
        return TrialStatusResponse(
            is_trial=member.is_trial,
            days_remaining=self.trial_days_remaining(member, now=now),
            trial_end=member.trial_end,
        )


__all__ = ["MembershipService", "month_window"]
