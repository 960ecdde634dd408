"""
Booking Microservice API

Partner service catalog, quotes, booking and cancellation.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query

from core.auth_dependencies import SessionContext, get_session_context, require_session
from core.config_manager import ConfigManager
from core.logger import setup_service_logger
from core.nats_client import get_event_bus
from microservices.membership_service.factory import create_subscription_client
from microservices.membership_service.models import MemberContext
from microservices.membership_service.protocols import RemoteFailureError
from microservices.service_request_service.models import RequestPriority

from .booking_service import BookingService
from .factory import create_booking_service
from .models import (
    BookingCostResponse,
    BookingRequest,
    BookingResult,
    CancelBookingRequest,
    CancellationResult,
    HealthCheckResponse,
    ServiceCategory,
    ServiceListResponse,
)
from .routes_registry import SERVICE_METADATA, get_route_summary

# Initialize config manager
config_manager = ConfigManager("booking_service")
config = config_manager.get_service_config()

# Configure logger
logger = setup_service_logger("booking_service", level=config.log_level.upper())

if config.debug:
    config_manager.print_config_summary(show_secrets=False)

# Global variables
booking_service: Optional[BookingService] = None
subscription_client = None
event_bus = None
SERVICE_PORT = config.service_port

ERROR_STATUS = {
    "NOT_AUTHENTICATED": 401,
    "INSUFFICIENT_CREDITS": 402,
    "NOT_AUTHORIZED": 403,
    "NOT_FOUND": 404,
    "CANCELLATION_NOT_ALLOWED": 409,
    "CREDIT_ACCOUNT_NOT_FOUND": 402,
    "INVALID_AMOUNT": 400,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management"""
    global booking_service, subscription_client, event_bus

    try:
        if config.nats_enabled:
            try:
                event_bus = await get_event_bus("booking_service", config=config_manager)
                logger.info("Event bus initialized successfully")
            except Exception as e:
                logger.warning(f"Failed to initialize event bus: {e}. Continuing without events.")
                event_bus = None

        booking_service = create_booking_service(config=config_manager, event_bus=event_bus)
        await booking_service.catalog_repository.initialize()
        subscription_client = create_subscription_client(config_manager)

        logger.info(f"Booking service started on port {SERVICE_PORT}")
        yield

    except Exception as e:
        logger.error(f"Failed to initialize booking service: {e}")
        raise
    finally:
        if event_bus:
            try:
                await event_bus.close()
                logger.info("Booking event bus closed")
            except Exception as e:
                logger.error(f"Error closing event bus: {e}")

        if subscription_client:
            await subscription_client.close()
        if booking_service:
            # One pool is shared by the catalog, credit and request repositories
            await booking_service.catalog_repository.close()
            logger.info("Booking service connections closed")


app = FastAPI(
    title="Booking Service",
    description="Partner service booking",
    version=SERVICE_METADATA["version"],
    lifespan=lifespan,
)


# ====================
# Dependency Injection
# ====================


async def get_booking_service() -> BookingService:
    """Get booking service instance"""
    if not booking_service:
        raise HTTPException(status_code=503, detail="Booking service not initialized")
    return booking_service


async def get_optional_member(
    session: Optional[SessionContext] = Depends(get_session_context),
) -> Optional[MemberContext]:
    """Caller's subscription, None for anonymous callers"""
    if session is None:
        return None
    if not subscription_client:
        raise HTTPException(status_code=503, detail="Subscription backend not initialized")
    try:
        status = await subscription_client.check_subscription(session.access_token, user_id=session.user_id)
    except RemoteFailureError as e:
        logger.error(f"Subscription lookup failed for {session.user_id}: {e}")
        raise HTTPException(status_code=502, detail="Subscription backend unavailable")
    return MemberContext.from_subscription(session.user_id, status)


async def get_member(
    session: SessionContext = Depends(require_session),
    member: Optional[MemberContext] = Depends(get_optional_member),
) -> MemberContext:
    return member


def _raise_for_result(result):
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
    if booking_service:
        db_health = await booking_service.catalog_repository.db.health_check()
        dependencies["postgres"] = "healthy" if db_health.get("healthy") else "unhealthy"
    dependencies["event_bus"] = "connected" if event_bus and event_bus.is_connected else "disabled"

    return HealthCheckResponse(
        status="healthy" if booking_service and dependencies.get("postgres") == "healthy" else "degraded",
        service=SERVICE_METADATA["service_name"],
        port=SERVICE_PORT,
        version=SERVICE_METADATA["version"],
        timestamp=datetime.now(timezone.utc).isoformat(),
        dependencies=dependencies,
    )


@app.get("/api/v1/bookings/info")
async def service_info():
    """Service information"""
    return {**SERVICE_METADATA, **get_route_summary()}


# ====================
# Catalog & Quotes
# ====================


@app.get("/api/v1/bookings/services", response_model=ServiceListResponse)
async def list_services(
    category: Optional[ServiceCategory] = Query(None),
    service: BookingService = Depends(get_booking_service),
):
    """Active partner services"""
    try:
        services = await service.fetch_services(category)
    except Exception as e:
        logger.error(f"Error loading partner services: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to load available services")
    return ServiceListResponse(services=services, count=len(services))


@app.get("/api/v1/bookings/cost", response_model=BookingCostResponse)
async def get_cost(
    category: ServiceCategory = Query(...),
    priority: RequestPriority = Query(RequestPriority.STANDARD),
    budget_max: Optional[float] = Query(None, ge=0),
    member: MemberContext = Depends(get_member),
    service: BookingService = Depends(get_booking_service),
):
    """What the caller would be charged, and whether they can afford it"""
    credits = service.get_booking_cost(member, category, priority, budget_max)
    affordable = await service.can_afford(member, category, priority, budget_max)
    return BookingCostResponse(
        category=category,
        priority=priority,
        budget_max=budget_max,
        credits=credits,
        is_unlimited=credits == 0,
        can_afford=affordable,
    )


# ====================
# Bookings
# ====================


@app.post("/api/v1/bookings", response_model=BookingResult)
async def create_booking(
    booking: BookingRequest,
    session: Optional[SessionContext] = Depends(get_session_context),
    member: Optional[MemberContext] = Depends(get_optional_member),
    service: BookingService = Depends(get_booking_service),
):
    """Book a partner service"""
    result = await service.create_booking(session, member, booking)
    return _raise_for_result(result)


@app.post("/api/v1/bookings/{request_id}/cancel", response_model=CancellationResult)
async def cancel_booking(
    request_id: str,
    body: Optional[CancelBookingRequest] = None,
    session: Optional[SessionContext] = Depends(get_session_context),
    service: BookingService = Depends(get_booking_service),
):
    """Cancel a booking in the early pipeline window"""
    result = await service.cancel_booking(session, request_id, body.reason if body else None)
    return _raise_for_result(result)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=SERVICE_PORT)
