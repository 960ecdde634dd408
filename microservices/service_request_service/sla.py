"""
Response-time SLA

Target response hours come from the member's tier benefits.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from microservices.membership_service.models import TierId
from microservices.membership_service.tier_catalog import get_tier_benefits

from .models import SLAMetrics


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def calculate_sla_metrics(
    created_at: datetime,
    tier_id: Union[TierId, str, None],
    first_response_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> SLAMetrics:
    """
    SLA metrics for a request.

    Without a response yet, the request is within SLA while now < deadline.
    Unknown tiers are measured against silver targets.
    """
    benefits = get_tier_benefits(tier_id)
    created = _aware(created_at)
    deadline = created + timedelta(hours=benefits.response_time_hours)

    if first_response_at is None:
        current = _aware(now) if now else datetime.now(timezone.utc)
        actual_hours = None
        within = current < deadline
    else:
        actual_hours = (_aware(first_response_at) - created).total_seconds() / 3600
        within = actual_hours <= benefits.response_time_hours

    try:
        resolved_tier = TierId(tier_id)
    except ValueError:
        resolved_tier = TierId.SILVER

    return SLAMetrics(
        tier_id=resolved_tier,
        target_response_hours=benefits.response_time_hours,
        sla_deadline=deadline,
        actual_response_hours=actual_hours,
        is_within_sla=within,
    )
