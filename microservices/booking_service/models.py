"""
Booking Service Data Models

Pydantic models for partner services and booking operations.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from microservices.membership_service.models import ServiceCategory
from microservices.service_request_service.models import RequestPriority


# ====================
# Core Models
# ====================

class PartnerService(BaseModel):
    """Bookable offering of a partner"""
    id: str
    partner_id: str
    title: str
    description: Optional[str] = None
    category: ServiceCategory
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    currency: Optional[str] = None
    highlights: List[str] = Field(default_factory=list)
    availability_notes: Optional[str] = None
    is_active: bool = True


# ====================
# Request Models
# ====================

class BookingRequest(BaseModel):
    """A member's booking of a partner service"""
    service_id: str = Field(..., min_length=1)
    partner_id: str = Field(..., min_length=1)
    category: ServiceCategory
    priority: RequestPriority = RequestPriority.STANDARD
    budget_min: Optional[float] = Field(None, ge=0)
    budget_max: Optional[float] = Field(None, ge=0)
    preferred_date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def check_budget_range(self):
        if self.budget_min is not None and self.budget_max is not None and self.budget_min > self.budget_max:
            raise ValueError("budget_min cannot exceed budget_max")
        return self


class CancelBookingRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)


# ====================
# Response Models
# ====================

class BookingResult(BaseModel):
    success: bool
    request_id: Optional[str] = None
    credits_used: Optional[int] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


class CancellationResult(BaseModel):
    success: bool
    refunded_credits: int = 0
    error: Optional[str] = None
    error_code: Optional[str] = None


class BookingCostResponse(BaseModel):
    """Quote for the caller"""
    category: ServiceCategory
    priority: RequestPriority
    budget_max: Optional[float] = None
    credits: int
    is_unlimited: bool
    can_afford: bool


class ServiceListResponse(BaseModel):
    services: List[PartnerService]
    count: int


class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str
    service: str
    port: int
    version: str
    timestamp: str
    dependencies: Dict[str, str] = Field(default_factory=dict)
