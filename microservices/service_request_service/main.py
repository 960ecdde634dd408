"""
Service Request Microservice API

Credit quotes, request pipeline, partner assignment and SLA metrics.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query

from core.auth_dependencies import SessionContext, require_internal_service, require_session
from core.config_manager import ConfigManager
from core.logger import setup_service_logger
from core.nats_client import get_event_bus
from microservices.membership_service.models import TierId

from .factory import create_service_request_service
from .models import (
    AssignPartnerRequest,
    CommissionResponse,
    HealthCheckResponse,
    OperationResult,
    PartnerAssignmentResult,
    PartnerPerformance,
    RequestPriority,
    RequestStatus,
    ServiceCategory,
    ServiceCostResponse,
    ServiceRequest,
    ServiceRequestListResponse,
    ServiceRequestUpdate,
    SLAMetrics,
    StatusChangeRequest,
    TransitionsResponse,
)
from .pricing import DEFAULT_COMMISSION_RATE
from .protocols import ServiceRequestNotFoundError
from .routes_registry import SERVICE_METADATA, get_route_summary
from .service_request_service import ServiceRequestService
from .status_flow import allowed_transitions, is_terminal

# Initialize config manager
config_manager = ConfigManager("service_request_service")
config = config_manager.get_service_config()

# Configure logger
logger = setup_service_logger("service_request_service", level=config.log_level.upper())

if config.debug:
    config_manager.print_config_summary(show_secrets=False)

# Global variables
request_service: Optional[ServiceRequestService] = None
event_bus = None
SERVICE_PORT = config.service_port

ERROR_STATUS = {
    "NOT_FOUND": 404,
    "INVALID_TRANSITION": 409,
    "PARTNER_NOT_APPROVED": 409,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management"""
    global request_service, event_bus

    try:
        if config.nats_enabled:
            try:
                event_bus = await get_event_bus("service_request_service", config=config_manager)
                logger.info("Event bus initialized successfully")
            except Exception as e:
                logger.warning(f"Failed to initialize event bus: {e}. Continuing without events.")
                event_bus = None

        request_service = create_service_request_service(config=config_manager, event_bus=event_bus)
        await request_service.repository.initialize()

        logger.info(f"Service request service started on port {SERVICE_PORT}")
        yield

    except Exception as e:
        logger.error(f"Failed to initialize service request service: {e}")
        raise
    finally:
        if event_bus:
            try:
                await event_bus.close()
                logger.info("Service request event bus closed")
            except Exception as e:
                logger.error(f"Error closing event bus: {e}")

        if request_service:
            await request_service.repository.close()
            logger.info("Service request service connections closed")


app = FastAPI(
    title="Service Request Service",
    description="Concierge request pipeline",
    version=SERVICE_METADATA["version"],
    lifespan=lifespan,
)


# ====================
# Dependency Injection
# ====================


async def get_request_service() -> ServiceRequestService:
    """Get service request service instance"""
    if not request_service:
        raise HTTPException(status_code=503, detail="Service request service not initialized")
    return request_service


async def get_owned_request(
    request_id: str,
    session: SessionContext = Depends(require_session),
    service: ServiceRequestService = Depends(get_request_service),
) -> ServiceRequest:
    """Load a request the caller owns (internal callers see all)"""
    request = await service.get_request(request_id)
    if request is None:
        raise HTTPException(status_code=404, detail="Service request not found")
    if not session.is_internal and request.client_id != session.user_id:
        raise HTTPException(status_code=403, detail="Not authorized to view this request")
    return request


def _raise_for_result(result: OperationResult) -> OperationResult:
    if not result.success:
        raise HTTPException(status_code=ERROR_STATUS.get(result.error_code, 502), detail=result.error)
    return result


# ====================
# Health & Info
# ====================


@app.get("/health", response_model=HealthCheckResponse)
async def health_check():
    """Health check including the database"""
    dependencies = {}
    if request_service:
        db_health = await request_service.repository.db.health_check()
        dependencies["postgres"] = "healthy" if db_health.get("healthy") else "unhealthy"
    dependencies["event_bus"] = "connected" if event_bus and event_bus.is_connected else "disabled"

    return HealthCheckResponse(
        status="healthy" if request_service and dependencies.get("postgres") == "healthy" else "degraded",
        service=SERVICE_METADATA["service_name"],
        port=SERVICE_PORT,
        version=SERVICE_METADATA["version"],
        timestamp=datetime.now(timezone.utc).isoformat(),
        dependencies=dependencies,
    )


@app.get("/api/v1/service-requests/info")
async def service_info():
    """Service information"""
    return {**SERVICE_METADATA, **get_route_summary()}


# ====================
# Pure Lookups
# ====================


@app.get("/api/v1/service-requests/cost", response_model=ServiceCostResponse)
async def get_cost(
    category: ServiceCategory = Query(...),
    priority: RequestPriority = Query(RequestPriority.STANDARD),
    budget_max: Optional[float] = Query(None, ge=0),
    service: ServiceRequestService = Depends(get_request_service),
):
    """Credit cost quote"""
    credits = service.get_service_cost(category, priority, budget_max)
    return ServiceCostResponse(category=category, priority=priority, budget_max=budget_max, credits=credits)


@app.get("/api/v1/service-requests/transitions/{status}", response_model=TransitionsResponse)
async def get_transitions(status: RequestStatus):
    """Statuses reachable from a status"""
    return TransitionsResponse(status=status, allowed=allowed_transitions(status), is_terminal=is_terminal(status))


@app.get("/api/v1/service-requests/commission", response_model=CommissionResponse)
async def get_commission(
    amount: float = Query(..., ge=0),
    rate: float = Query(DEFAULT_COMMISSION_RATE, ge=0, le=100),
    service: ServiceRequestService = Depends(get_request_service),
):
    """Partner commission for a booking amount"""
    return CommissionResponse(
        booking_amount=amount,
        commission_rate=rate,
        commission=service.calculate_partner_commission(amount, rate),
    )


@app.get("/api/v1/service-requests/partners/{partner_id}/performance", response_model=PartnerPerformance)
async def get_partner_performance(
    partner_id: str,
    session: SessionContext = Depends(require_internal_service),
    service: ServiceRequestService = Depends(get_request_service),
):
    """Partner earnings and activity"""
    try:
        return await service.get_partner_performance(partner_id)
    except Exception as e:
        logger.error(f"Error loading performance for {partner_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to load partner performance")


# ====================
# Requests
# ====================


@app.get("/api/v1/service-requests", response_model=ServiceRequestListResponse)
async def list_requests(
    status: Optional[RequestStatus] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: SessionContext = Depends(require_session),
    service: ServiceRequestService = Depends(get_request_service),
):
    """Caller's requests, newest first"""
    requests = await service.list_requests(session.user_id, status=status, limit=limit, offset=offset)
    return ServiceRequestListResponse(requests=requests, count=len(requests))


@app.get("/api/v1/service-requests/{request_id}", response_model=ServiceRequest)
async def get_request(request: ServiceRequest = Depends(get_owned_request)):
    """Get one request"""
    return request


@app.get("/api/v1/service-requests/{request_id}/updates", response_model=List[ServiceRequestUpdate])
async def get_updates(
    request: ServiceRequest = Depends(get_owned_request),
    session: SessionContext = Depends(require_session),
    service: ServiceRequestService = Depends(get_request_service),
):
    """Audit trail, newest first; clients see client-visible entries only"""
    return await service.get_updates(request.id, client_visible_only=not session.is_internal)


@app.get("/api/v1/service-requests/{request_id}/sla", response_model=SLAMetrics)
async def get_sla(
    request: ServiceRequest = Depends(get_owned_request),
    tier: TierId = Query(TierId.SILVER),
    service: ServiceRequestService = Depends(get_request_service),
):
    """Response-time SLA against the given tier"""
    try:
        return await service.get_request_sla(request.id, tier)
    except ServiceRequestNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ====================
# Operator Actions
# ====================


@app.post("/api/v1/service-requests/{request_id}/status", response_model=OperationResult)
async def advance_status(
    request_id: str,
    body: StatusChangeRequest,
    session: SessionContext = Depends(require_internal_service),
    service: ServiceRequestService = Depends(get_request_service),
):
    """Advance a request along the status flow"""
    result = await service.advance_service_status(
        request_id, body.new_status, body.actor_id or session.user_id, body.actor_role, body.notes
    )
    return _raise_for_result(result)


@app.post("/api/v1/service-requests/{request_id}/assign-partner", response_model=PartnerAssignmentResult)
async def assign_partner(
    request_id: str,
    body: AssignPartnerRequest,
    session: SessionContext = Depends(require_internal_service),
    service: ServiceRequestService = Depends(get_request_service),
):
    """Assign an approved partner"""
    result = await service.assign_partner(
        request_id,
        body.partner_id,
        actor_id=body.actor_id or session.user_id,
        estimated_cost=body.estimated_cost,
        notes=body.notes,
    )
    return _raise_for_result(result)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=SERVICE_PORT)
