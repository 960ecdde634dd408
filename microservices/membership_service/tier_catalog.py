"""
Membership Tier Catalog

Static, immutable tier table loaded once at import. Lookups are pure and
never fail: unknown ids resolve to None/False/0.

Price ids default to the catalog values and may be overridden with
<TIER>_MONTHLY_PRICE_ID / <TIER>_ANNUAL_PRICE_ID environment variables.
"""

import os
from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import FrozenSet, List, Mapping, Optional, Union

from .models import ServiceCategory, TierBenefits, TierId, TierResponse

TierKey = Union[TierId, str, None]

# Lowest first
TIER_ORDER: List[TierId] = [TierId.SILVER, TierId.GOLD, TierId.PLATINUM]

# Shown as the balance for unlimited tiers; never debited
UNLIMITED_CREDITS_SENTINEL = 999


@dataclass(frozen=True)
class MembershipTier:
    """Tier definition"""
    id: TierId
    name: str
    monthly_credits: int
    is_unlimited: bool
    annual_price: Optional[Decimal]
    monthly_price_id: str
    annual_price_id: str
    allowed_categories: FrozenSet[ServiceCategory]
    benefits: TierBenefits

    def to_response(self) -> TierResponse:
        return TierResponse(
            id=self.id,
            name=self.name,
            monthly_credits=self.monthly_credits,
            is_unlimited=self.is_unlimited,
            annual_price=self.annual_price,
            monthly_price_id=self.monthly_price_id,
            annual_price_id=self.annual_price_id,
            allowed_categories=sorted(self.allowed_categories, key=lambda c: c.value),
            benefits=self.benefits,
        )


_ESSENTIAL_CATEGORIES = frozenset({
    ServiceCategory.DINING,
    ServiceCategory.SHOPPING,
    ServiceCategory.TRAVEL,
    ServiceCategory.EVENTS_ACCESS,
    ServiceCategory.WELLNESS,
    ServiceCategory.CHAUFFEUR,
    ServiceCategory.SECURITY,
    ServiceCategory.COLLECTIBLES,
})

_PREMIUM_CATEGORIES = _ESSENTIAL_CATEGORIES | {
    ServiceCategory.PRIVATE_AVIATION,
    ServiceCategory.YACHT_CHARTER,
}


def _price_id(tier: TierId, period: str, default: str) -> str:
    return os.getenv(f"{tier.value.upper()}_{period}_PRICE_ID", default)


def _build_catalog() -> Mapping[TierId, MembershipTier]:
    tiers = [
        MembershipTier(
            id=TierId.SILVER,
            name="Silver",
            monthly_credits=15,
            is_unlimited=False,
            annual_price=Decimal("2500"),
            monthly_price_id=_price_id(TierId.SILVER, "MONTHLY", "price_silver_monthly"),
            annual_price_id=_price_id(TierId.SILVER, "ANNUAL", "price_silver_annual"),
            allowed_categories=_ESSENTIAL_CATEGORIES,
            benefits=TierBenefits(response_time_hours=24),
        ),
        MembershipTier(
            id=TierId.GOLD,
            name="Gold",
            monthly_credits=50,
            is_unlimited=False,
            annual_price=Decimal("10000"),
            monthly_price_id=_price_id(TierId.GOLD, "MONTHLY", "price_gold_monthly"),
            annual_price_id=_price_id(TierId.GOLD, "ANNUAL", "price_gold_annual"),
            allowed_categories=_PREMIUM_CATEGORIES,
            benefits=TierBenefits(
                response_time_hours=4,
                dedicated_manager=True,
                priority_access=True,
                vip_events=True,
                private_aviation=True,
                yacht_access=True,
            ),
        ),
        MembershipTier(
            id=TierId.PLATINUM,
            name="Platinum",
            monthly_credits=UNLIMITED_CREDITS_SENTINEL,
            is_unlimited=True,
            annual_price=None,  # by invitation
            monthly_price_id=_price_id(TierId.PLATINUM, "MONTHLY", "price_platinum_monthly"),
            annual_price_id=_price_id(TierId.PLATINUM, "ANNUAL", "price_platinum_annual"),
            allowed_categories=frozenset(ServiceCategory),
            benefits=TierBenefits(
                response_time_hours=1,
                dedicated_manager=True,
                priority_access=True,
                unlimited_requests=True,
                vip_events=True,
                private_aviation=True,
                yacht_access=True,
                property_access=True,
                family_office=True,
            ),
        ),
    ]
    return MappingProxyType({tier.id: tier for tier in tiers})


MEMBERSHIP_TIERS: Mapping[TierId, MembershipTier] = _build_catalog()

# Payment backend product id -> tier (current and legacy products)
PRODUCT_TIER_MAP: Mapping[str, TierId] = MappingProxyType({
    "prod_Ts5HAYiH4FXdPJ": TierId.SILVER,
    "prod_Ts5IziHQ8aBVBk": TierId.SILVER,
    "prod_Ts5J8xal3xrVGe": TierId.GOLD,
    "prod_Ts5JJ4lhh13l9m": TierId.GOLD,
    "prod_Ts5KqzhPH0Zbto": TierId.PLATINUM,
    "prod_Ts5K3NqvPvE4BO": TierId.PLATINUM,
})


def _coerce(tier_id: TierKey) -> Optional[TierId]:
    if tier_id is None:
        return None
    if isinstance(tier_id, TierId):
        return tier_id
    try:
        return TierId(tier_id)
    except ValueError:
        return None


def get_tier_by_id(tier_id: TierKey) -> Optional[MembershipTier]:
    tier = _coerce(tier_id)
    return MEMBERSHIP_TIERS.get(tier) if tier else None


def can_access_service(tier_id: TierKey, category: Union[ServiceCategory, str]) -> bool:
    """True iff the category is in the tier's allowed set or the tier is unlimited"""
    tier = get_tier_by_id(tier_id)
    if tier is None:
        return False
    if tier.is_unlimited:
        return True
    try:
        return ServiceCategory(category) in tier.allowed_categories
    except ValueError:
        return False


def get_credits_by_tier(tier_id: TierKey) -> int:
    tier = get_tier_by_id(tier_id)
    return tier.monthly_credits if tier else 0


def is_unlimited_tier(tier_id: TierKey) -> bool:
    tier = get_tier_by_id(tier_id)
    return bool(tier and tier.is_unlimited)


def get_tier_benefits(tier_id: TierKey) -> TierBenefits:
    """Benefits for a tier; unknown tiers get silver benefits"""
    tier = get_tier_by_id(tier_id) or MEMBERSHIP_TIERS[TierId.SILVER]
    return tier.benefits


def next_tier(tier_id: TierKey) -> Optional[TierId]:
    tier = _coerce(tier_id)
    if tier is None:
        return TIER_ORDER[0]
    index = TIER_ORDER.index(tier)
    return TIER_ORDER[index + 1] if index + 1 < len(TIER_ORDER) else None


def tiers_above(tier_id: TierKey) -> List[TierId]:
    tier = _coerce(tier_id)
    if tier is None:
        return list(TIER_ORDER)
    return TIER_ORDER[TIER_ORDER.index(tier) + 1:]


def minimum_tier_for(category: Union[ServiceCategory, str]) -> Optional[TierId]:
    """Lowest tier that can access the category"""
    for tier_id in TIER_ORDER:
        if can_access_service(tier_id, category):
            return tier_id
    return None


def tier_for_product(product_id: Optional[str]) -> Optional[TierId]:
    if not product_id:
        return None
    return PRODUCT_TIER_MAP.get(product_id)
