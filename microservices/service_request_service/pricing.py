"""
Service Credit Costing

Pure pricing of concierge requests in credits, plus partner commissions.

    credits = ceil(base[category] * priority_multiplier * budget_multiplier)

The product is computed with Decimal so that e.g. 10 * 1.1 is exactly 11.
The quote shown before booking and the amount charged at booking both come
from calculate_service_credit_cost, so they are always equal.
"""

from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from types import MappingProxyType
from typing import Mapping, Optional, Tuple, Union

from .models import RequestPriority, ServiceCategory

Number = Union[int, float, Decimal, str]

SERVICE_CREDIT_COSTS: Mapping[ServiceCategory, int] = MappingProxyType({
    # Simple requests
    ServiceCategory.DINING: 1,
    ServiceCategory.SHOPPING: 1,
    ServiceCategory.TRAVEL: 2,
    ServiceCategory.EVENTS_ACCESS: 2,
    ServiceCategory.WELLNESS: 2,
    # Complex bookings
    ServiceCategory.CHAUFFEUR: 5,
    ServiceCategory.SECURITY: 8,
    ServiceCategory.PRIVATE_AVIATION: 10,
    ServiceCategory.YACHT_CHARTER: 10,
    # Bespoke experiences
    ServiceCategory.REAL_ESTATE: 15,
    ServiceCategory.COLLECTIBLES: 20,
})

PRIORITY_MULTIPLIERS: Mapping[RequestPriority, Decimal] = MappingProxyType({
    RequestPriority.STANDARD: Decimal("1"),
    RequestPriority.PRIORITY: Decimal("1.5"),
    RequestPriority.URGENT: Decimal("2"),
    RequestPriority.IMMEDIATE: Decimal("3"),
})

# (exclusive lower bound, multiplier), highest first; first match wins
BUDGET_SURCHARGES: Tuple[Tuple[Decimal, Decimal], ...] = (
    (Decimal("100000"), Decimal("1.5")),
    (Decimal("50000"), Decimal("1.25")),
    (Decimal("25000"), Decimal("1.1")),
)

DEFAULT_COMMISSION_RATE = 15


def _decimal(value: Number) -> Decimal:
    # str() keeps float literals like 1.1 exact
    return value if isinstance(value, Decimal) else Decimal(str(value))


def budget_multiplier(budget_max: Optional[Number]) -> Decimal:
    if budget_max is None:
        return Decimal("1")
    budget = _decimal(budget_max)
    if budget < 0:
        raise ValueError(f"budget_max cannot be negative: {budget_max}")
    for threshold, multiplier in BUDGET_SURCHARGES:
        if budget > threshold:
            return multiplier
    return Decimal("1")


def calculate_service_credit_cost(
    category: Union[ServiceCategory, str],
    priority: Union[RequestPriority, str] = RequestPriority.STANDARD,
    budget_max: Optional[Number] = None,
) -> int:
    """
    Credit cost of a request.

    Raises:
        ValueError: unknown category or priority, or negative budget
    """
    base = SERVICE_CREDIT_COSTS[ServiceCategory(category)]
    multiplier = PRIORITY_MULTIPLIERS[RequestPriority(priority)]
    cost = Decimal(base) * multiplier * budget_multiplier(budget_max)
    return int(cost.to_integral_value(rounding=ROUND_CEILING))


def calculate_partner_commission(booking_amount: Number, rate: Number = DEFAULT_COMMISSION_RATE) -> float:
    """Commission rounded half-up to cents"""
    commission = _decimal(booking_amount) * _decimal(rate) / Decimal("100")
    return float(commission.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
