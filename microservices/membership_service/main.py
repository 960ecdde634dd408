"""
Membership Microservice API

Tier catalog, tier-gated access checks, usage metrics and upgrade advice.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query

from core.auth_dependencies import SessionContext, require_session
from core.config_manager import ConfigManager
from core.logger import setup_service_logger
from core.nats_client import get_event_bus

from .factory import create_membership_service
from .membership_service import MembershipService
from .models import (
    CheckoutRequest,
    HealthCheckResponse,
    MemberContext,
    RedirectResponse,
    ServiceAccessResult,
    ServiceCategory,
    TierResponse,
    TrialStatusResponse,
    UpgradeCheckResult,
    UpgradeRecommendation,
    UsageMetrics,
)
from .protocols import RemoteFailureError, TierNotFoundError
from .routes_registry import SERVICE_METADATA, get_route_summary

# Initialize config manager
config_manager = ConfigManager("membership_service")
config = config_manager.get_service_config()

# Configure logger
logger = setup_service_logger("membership_service", level=config.log_level.upper())

if config.debug:
    config_manager.print_config_summary(show_secrets=False)

# Global variables
membership_service: Optional[MembershipService] = None
event_bus = None
SERVICE_PORT = config.service_port


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management"""
    global membership_service, event_bus

    try:
        if config.nats_enabled:
            try:
                event_bus = await get_event_bus("membership_service", config=config_manager)
                logger.info("Event bus initialized successfully")
            except Exception as e:
                logger.warning(f"Failed to initialize event bus: {e}. Continuing without events.")
                event_bus = None

        membership_service = create_membership_service(config=config_manager, event_bus=event_bus)
        await membership_service.repository.initialize()

        logger.info(f"Membership service started on port {SERVICE_PORT}")
        yield

    except Exception as e:
        logger.error(f"Failed to initialize membership service: {e}")
        raise
    finally:
        if event_bus:
            try:
                await event_bus.close()
                logger.info("Membership event bus closed")
            except Exception as e:
                logger.error(f"Error closing event bus: {e}")

        if membership_service:
            await membership_service.repository.close()
            if membership_service.subscription_client:
                await membership_service.subscription_client.close()
            logger.info("Membership service connections closed")


app = FastAPI(
    title="Membership Service",
    description="Membership tiers, access checks and upgrade advice",
    version=SERVICE_METADATA["version"],
    lifespan=lifespan,
)


# ====================
# Dependency Injection
# ====================


async def get_membership_service() -> MembershipService:
    """Get membership service instance"""
    if not membership_service:
        raise HTTPException(status_code=503, detail="Membership service not initialized")
    return membership_service


async def get_member(
    session: SessionContext = Depends(require_session),
    service: MembershipService = Depends(get_membership_service),
) -> MemberContext:
    """Resolve the caller's subscription"""
    try:
        return await service.get_member_context(session.user_id, session.access_token)
    except RemoteFailureError as e:
        logger.error(f"Subscription lookup failed for {session.user_id}: {e}")
        raise HTTPException(status_code=502, detail="Subscription backend unavailable")


# ====================
# Health & Info
# ====================


@app.get("/health", response_model=HealthCheckResponse)
async def health_check():
    """Basic health check"""
    return HealthCheckResponse(
        status="healthy" if membership_service else "starting",
        service=SERVICE_METADATA["service_name"],
        port=SERVICE_PORT,
        version=SERVICE_METADATA["version"],
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@app.get("/api/v1/membership/info")
async def service_info():
    """Service information"""
    return {**SERVICE_METADATA, **get_route_summary()}


# ====================
# Tier Catalog
# ====================


@app.get("/api/v1/membership/tiers", response_model=List[TierResponse])
async def list_tiers(service: MembershipService = Depends(get_membership_service)):
    """List tiers, lowest first"""
    return service.list_tiers()


@app.get("/api/v1/membership/tiers/{tier_id}", response_model=TierResponse)
async def get_tier(tier_id: str, service: MembershipService = Depends(get_membership_service)):
    """Get one tier"""
    try:
        return service.get_tier(tier_id)
    except TierNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ====================
# Access
# ====================


@app.get("/api/v1/membership/access", response_model=ServiceAccessResult)
async def check_access(
    category: ServiceCategory = Query(...),
    member: MemberContext = Depends(get_member),
    service: MembershipService = Depends(get_membership_service),
):
    """Whether the caller can use a service category"""
    return service.check_service_access(member, category)


@app.get("/api/v1/membership/upgrade-check", response_model=UpgradeCheckResult)
async def check_upgrade(
    category: ServiceCategory = Query(...),
    member: MemberContext = Depends(get_member),
    service: MembershipService = Depends(get_membership_service),
):
    """Whether the caller must upgrade to use a service category"""
    return service.check_upgrade_needed(member, category)


# ====================
# Usage & Advice
# ====================


@app.get("/api/v1/membership/usage", response_model=UsageMetrics)
async def get_usage(
    session: SessionContext = Depends(require_session),
    service: MembershipService = Depends(get_membership_service),
):
    """Usage metrics for this calendar month"""
    try:
        return await service.get_usage_metrics(session.user_id)
    except Exception as e:
        logger.error(f"Error loading usage for {session.user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to load usage metrics")


@app.get("/api/v1/membership/recommendation", response_model=UpgradeRecommendation)
async def get_recommendation(
    member: MemberContext = Depends(get_member),
    service: MembershipService = Depends(get_membership_service),
):
    """Upgrade recommendation"""
    return await service.get_upgrade_recommendation(member)


@app.get("/api/v1/membership/upgrades", response_model=List[TierResponse])
async def get_available_upgrades(
    member: MemberContext = Depends(get_member),
    service: MembershipService = Depends(get_membership_service),
):
    """Tiers above the caller's current tier"""
    return service.available_upgrades(member)


# ====================
# Checkout & Portal
# ====================


@app.post("/api/v1/membership/checkout", response_model=RedirectResponse)
async def start_checkout(
    request: CheckoutRequest,
    session: SessionContext = Depends(require_session),
    member: MemberContext = Depends(get_member),
    service: MembershipService = Depends(get_membership_service),
):
    """Start an upgrade checkout"""
    result = await service.initiate_upgrade(
        member, request.tier_id, request.billing_period, access_token=session.access_token
    )
    if not result.success:
        status_code = 502 if result.error_code == "REMOTE_FAILURE" else 400
        raise HTTPException(status_code=status_code, detail=result.error)
    return result


@app.post("/api/v1/membership/portal", response_model=RedirectResponse)
async def open_portal(
    session: SessionContext = Depends(require_session),
    service: MembershipService = Depends(get_membership_service),
):
    """Open the customer portal"""
    result = await service.open_customer_portal(session.access_token)
    if not result.success:
        raise HTTPException(status_code=502, detail=result.error)
    return result


@app.get("/api/v1/membership/trial", response_model=TrialStatusResponse)
async def get_trial(
    member: MemberContext = Depends(get_member),
    service: MembershipService = Depends(get_membership_service),
):
    """Trial status"""
    return service.get_trial_status(member)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=SERVICE_PORT)
