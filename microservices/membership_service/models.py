"""
Membership Service Data Models

Pydantic models for membership tiers, member context, usage metrics and
upgrade advice.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ====================
# Enums
# ====================

class TierId(str, Enum):
    """Membership tiers, lowest first"""
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


class ServiceCategory(str, Enum):
    """Concierge service categories"""
    PRIVATE_AVIATION = "private_aviation"
    YACHT_CHARTER = "yacht_charter"
    REAL_ESTATE = "real_estate"
    COLLECTIBLES = "collectibles"
    EVENTS_ACCESS = "events_access"
    SECURITY = "security"
    DINING = "dining"
    TRAVEL = "travel"
    WELLNESS = "wellness"
    SHOPPING = "shopping"
    CHAUFFEUR = "chauffeur"


class BillingPeriod(str, Enum):
    """Checkout billing period"""
    MONTHLY = "monthly"
    ANNUAL = "annual"


# ====================
# Core Models
# ====================

class TierBenefits(BaseModel):
    """Benefits granted by a tier"""
    model_config = ConfigDict(frozen=True)

    response_time_hours: int = Field(..., gt=0)
    dedicated_manager: bool = False
    priority_access: bool = False
    unlimited_requests: bool = False
    vip_events: bool = False
    private_aviation: bool = False
    yacht_access: bool = False
    property_access: bool = False
    family_office: bool = False


class SubscriptionStatus(BaseModel):
    """Payment backend subscription lookup result"""
    subscribed: bool = False
    tier: Optional[TierId] = None
    product_id: Optional[str] = None
    subscription_end: Optional[datetime] = None
    is_trial: bool = False
    trial_end: Optional[datetime] = None
    is_paygo: bool = False


class MemberContext(BaseModel):
    """
    Subscription state of one member.

    Passed explicitly to credit and booking operations.
    """
    user_id: str = Field(..., min_length=1)
    subscribed: bool = False
    tier: Optional[TierId] = None
    product_id: Optional[str] = None
    subscription_end: Optional[datetime] = None
    is_trial: bool = False
    trial_end: Optional[datetime] = None
    is_paygo: bool = False

    @property
    def is_member(self) -> bool:
        """Has an active or trial membership with a known tier"""
        return self.tier is not None and (self.subscribed or self.is_trial)

    @classmethod
    def from_subscription(cls, user_id: str, status: SubscriptionStatus) -> "MemberContext":
        return cls(user_id=user_id, **status.model_dump())


class UsageMetrics(BaseModel):
    """Usage for the current calendar month (derived, not persisted)"""
    requests_this_month: int = Field(default=0, ge=0)
    credits_used: int = Field(default=0, ge=0)
    credits_remaining: int = Field(default=0, ge=0)
    completed_requests: int = Field(default=0, ge=0)
    average_response_time: float = 0
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None


# ====================
# Response Models
# ====================

class TierResponse(BaseModel):
    """Tier catalog entry"""
    id: TierId
    name: str
    monthly_credits: int
    is_unlimited: bool
    annual_price: Optional[Decimal] = None
    monthly_price_id: str
    annual_price_id: str
    allowed_categories: List[ServiceCategory]
    benefits: TierBenefits


class UpgradeRecommendation(BaseModel):
    """Upgrade advisor result"""
    should_upgrade: bool
    recommended_tier: Optional[TierId] = None
    reason: str
    rule: Optional[str] = None


class ServiceAccessResult(BaseModel):
    """Whether a member can use a service category"""
    has_access: bool
    required_tier: Optional[TierId] = None


class UpgradeCheckResult(BaseModel):
    """Whether a member must upgrade to use a service category"""
    needs_upgrade: bool
    suggested_tier: Optional[TierId] = None
    reason: Optional[str] = None


class CheckoutRequest(BaseModel):
    """Upgrade checkout request"""
    tier_id: TierId
    billing_period: BillingPeriod = BillingPeriod.MONTHLY


class RedirectResponse(BaseModel):
    """Checkout or portal link"""
    success: bool
    url: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


class TrialStatusResponse(BaseModel):
    """Trial status"""
    is_trial: bool
    days_remaining: int = Field(default=0, ge=0)
    trial_end: Optional[datetime] = None


class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str
    service: str
    port: int
    version: str
    timestamp: str
