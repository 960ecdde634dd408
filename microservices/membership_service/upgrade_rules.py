"""
Upgrade Advisor Rules

Ordered decision table. Rules are checked top to bottom and the first
matching rule decides the recommendation.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, List, Optional

from .models import TierId, UpgradeRecommendation, UsageMetrics
from .tier_catalog import get_tier_by_id, next_tier

HIGH_CREDIT_USAGE_RATIO = Decimal("0.9")
SILVER_REQUEST_THRESHOLD = 3
GOLD_REQUEST_THRESHOLD = 10

NO_UPGRADE_REASON = "Your current tier matches your usage pattern."
NO_DATA_REASON = "Unable to analyze usage"


@dataclass(frozen=True)
class RuleInput:
    """What the rules see"""
    tier: Optional[TierId]
    monthly_allocation: int
    is_unlimited: bool
    metrics: UsageMetrics


@dataclass(frozen=True)
class UpgradeRule:
    name: str
    predicate: Callable[[RuleInput], bool]
    target: Callable[[RuleInput], Optional[TierId]]
    reason: str


def _high_credit_usage(data: RuleInput) -> bool:
    if data.is_unlimited or data.monthly_allocation <= 0 or next_tier(data.tier) is None:
        return False
    return Decimal(data.metrics.credits_used) > data.monthly_allocation * HIGH_CREDIT_USAGE_RATIO


UPGRADE_RULES: List[UpgradeRule] = [
    UpgradeRule(
        name="high_credit_usage",
        predicate=_high_credit_usage,
        target=lambda data: next_tier(data.tier),
        reason="You've used over 90% of your monthly credits. Upgrade for more capacity.",
    ),
    UpgradeRule(
        name="silver_frequent_requests",
        predicate=lambda data: (
            data.tier == TierId.SILVER
            and data.metrics.requests_this_month > SILVER_REQUEST_THRESHOLD
        ),
        target=lambda data: TierId.GOLD,
        reason="Upgrade to Gold for priority response times and a dedicated account manager.",
    ),
    UpgradeRule(
        name="gold_frequent_requests",
        predicate=lambda data: (
            data.tier == TierId.GOLD
            and data.metrics.requests_this_month > GOLD_REQUEST_THRESHOLD
        ),
        target=lambda data: TierId.PLATINUM,
        reason="Your usage suggests Platinum would provide better value with unlimited requests.",
    ),
]


def evaluate_upgrade_rules(
    tier: Optional[TierId],
    metrics: Optional[UsageMetrics],
    rules: Optional[List[UpgradeRule]] = None,
) -> UpgradeRecommendation:
    """Apply the rules table to a member's tier and monthly usage"""
    if tier is None or metrics is None:
        return UpgradeRecommendation(should_upgrade=False, reason=NO_DATA_REASON)

    definition = get_tier_by_id(tier)
    data = RuleInput(
        tier=tier,
        monthly_allocation=definition.monthly_credits if definition else 0,
        is_unlimited=bool(definition and definition.is_unlimited),
        metrics=metrics,
    )

    for rule in (UPGRADE_RULES if rules is None else rules):
        if rule.predicate(data):
            return UpgradeRecommendation(
                should_upgrade=True,
                recommended_tier=rule.target(data),
                reason=rule.reason,
                rule=rule.name,
            )

    return UpgradeRecommendation(should_upgrade=False, reason=NO_UPGRADE_REASON)
