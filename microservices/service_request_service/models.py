"""
Service Request Service Data Models

Pydantic models for service requests, their audit trail and partners.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from microservices.membership_service.models import ServiceCategory, TierId


# ====================
# Enums
# ====================

class RequestStatus(str, Enum):
    """Service request lifecycle"""
    PENDING = "pending"
    IN_REVIEW = "in_review"
    SOURCING = "sourcing"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    OPTIONS_READY = "options_ready"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    FULFILLING = "fulfilling"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RequestPriority(str, Enum):
    STANDARD = "standard"
    PRIORITY = "priority"
    URGENT = "urgent"
    IMMEDIATE = "immediate"


class UpdaterRole(str, Enum):
    """Who appended an update"""
    CLIENT = "client"
    PARTNER = "partner"
    SYSTEM = "system"
    ADMIN = "admin"
    CONCIERGE = "concierge"


class UpdateType(str, Enum):
    STATUS_CHANGE = "status_change"
    PARTNER_ASSIGNMENT = "partner_assignment"
    CANCELLATION = "cancellation"
    MESSAGE = "message"


class PartnerStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class CommissionStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


# ====================
# Core Models
# ====================

class ServiceRequest(BaseModel):
    """A client's concierge request"""
    id: str
    client_id: str
    title: str
    description: Optional[str] = None
    category: ServiceCategory
    status: RequestStatus = RequestStatus.PENDING
    priority: RequestPriority = RequestPriority.STANDARD
    budget_min: Optional[float] = None
    budget_max: Optional[float] = None
    deadline: Optional[datetime] = None
    partner_id: Optional[str] = None
    requirements: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ServiceRequestUpdate(BaseModel):
    """Immutable audit trail entry"""
    id: str
    service_request_id: str
    update_type: UpdateType
    previous_status: Optional[RequestStatus] = None
    new_status: Optional[RequestStatus] = None
    title: str
    description: Optional[str] = None
    updated_by: Optional[str] = None
    updated_by_role: UpdaterRole
    is_visible_to_client: bool = True
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None


class Partner(BaseModel):
    id: str
    company_name: str
    status: PartnerStatus


class PartnerCommission(BaseModel):
    id: str
    partner_id: str
    service_request_id: Optional[str] = None
    booking_amount: float = 0
    commission_rate: float = 15
    commission_amount: float = 0
    status: CommissionStatus = CommissionStatus.PENDING
    created_at: Optional[datetime] = None


# ====================
# Request Models
# ====================

class ServiceRequestCreate(BaseModel):
    """Fields of a new request; status is always pending"""
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    category: ServiceCategory
    priority: RequestPriority = RequestPriority.STANDARD
    budget_min: Optional[float] = Field(None, ge=0)
    budget_max: Optional[float] = Field(None, ge=0)
    deadline: Optional[datetime] = None
    partner_id: Optional[str] = None
    requirements: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_budget_range(self):
        if self.budget_min is not None and self.budget_max is not None and self.budget_min > self.budget_max:
            raise ValueError("budget_min cannot exceed budget_max")
        return self


class ServiceRequestUpdateCreate(BaseModel):
    """Fields of a new audit entry"""
    update_type: UpdateType
    title: str
    description: Optional[str] = None
    previous_status: Optional[RequestStatus] = None
    new_status: Optional[RequestStatus] = None
    updated_by: Optional[str] = None
    updated_by_role: UpdaterRole
    is_visible_to_client: bool = True
    metadata: Dict[str, Any] = Field(default_factory=dict)


class StatusChangeRequest(BaseModel):
    new_status: RequestStatus
    actor_id: Optional[str] = None
    actor_role: UpdaterRole = UpdaterRole.CONCIERGE
    notes: Optional[str] = Field(None, max_length=2000)


class AssignPartnerRequest(BaseModel):
    partner_id: str = Field(..., min_length=1)
    actor_id: Optional[str] = None
    estimated_cost: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=2000)


# ====================
# Response Models
# ====================

class OperationResult(BaseModel):
    """Result of a pipeline mutation"""
    success: bool
    error: Optional[str] = None
    error_code: Optional[str] = None


class PartnerAssignmentResult(OperationResult):
    partner: Optional[Partner] = None


class ServiceCostResponse(BaseModel):
    category: ServiceCategory
    priority: RequestPriority
    budget_max: Optional[float] = None
    credits: int


class TransitionsResponse(BaseModel):
    status: RequestStatus
    allowed: List[RequestStatus]
    is_terminal: bool


class ServiceRequestListResponse(BaseModel):
    requests: List[ServiceRequest]
    count: int


class SLAMetrics(BaseModel):
    """Response-time SLA for one request"""
    tier_id: TierId
    target_response_hours: int
    sla_deadline: datetime
    actual_response_hours: Optional[float] = None
    is_within_sla: bool


class CommissionResponse(BaseModel):
    booking_amount: float
    commission_rate: float
    commission: float


class PartnerPerformance(BaseModel):
    partner_id: str
    total_earnings: float = 0
    completed_bookings: int = 0
    pending_earnings: float = 0
    active_services: int = 0


class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str
    service: str
    port: int
    version: str
    timestamp: str
    dependencies: Dict[str, str] = Field(default_factory=dict)
