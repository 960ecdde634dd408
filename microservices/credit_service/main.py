"""
Credit Microservice API

Per-member credit balance, usage, purchases and ledger audit.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query

from core.auth_dependencies import SessionContext, require_internal_service, require_session
from core.config_manager import ConfigManager
from core.logger import setup_service_logger
from core.nats_client import get_event_bus
from microservices.membership_service.factory import create_subscription_client
from microservices.membership_service.models import MemberContext
from microservices.membership_service.protocols import RemoteFailureError

from .credit_service import CreditService
from .factory import create_credit_service, create_tier_lookup
from .models import (
    AddCreditsRequest,
    CreditBalanceResponse,
    CreditCheckResult,
    CreditOperationResult,
    HealthCheckResponse,
    MonthlyResetResult,
    ReconciliationReport,
    TransactionListResponse,
    UseCreditRequest,
)
from .protocols import CreditAccountNotFoundError
from .routes_registry import SERVICE_METADATA, get_route_summary

# Initialize config manager
config_manager = ConfigManager("credit_service")
config = config_manager.get_service_config()

# Configure logger
logger = setup_service_logger("credit_service", level=config.log_level.upper())

if config.debug:
    config_manager.print_config_summary(show_secrets=False)

# Global variables
credit_service: Optional[CreditService] = None
subscription_client = None
event_bus = None
SERVICE_PORT = config.service_port

# Status codes for failed ledger mutations
ERROR_STATUS = {
    "INSUFFICIENT_CREDITS": 402,
    "CREDIT_ACCOUNT_NOT_FOUND": 404,
    "INVALID_AMOUNT": 400,
    "INVALID_TRANSACTION_TYPE": 400,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management"""
    global credit_service, subscription_client, event_bus

    try:
        if config.nats_enabled:
            try:
                event_bus = await get_event_bus("credit_service", config=config_manager)
                logger.info("Event bus initialized successfully")
            except Exception as e:
                logger.warning(f"Failed to initialize event bus: {e}. Continuing without events.")
                event_bus = None

        credit_service = create_credit_service(config=config_manager, event_bus=event_bus)
        await credit_service.repository.initialize()
        subscription_client = create_subscription_client(config_manager)

        logger.info(f"Credit service started on port {SERVICE_PORT}")
        yield

    except Exception as e:
        logger.error(f"Failed to initialize credit service: {e}")
        raise
    finally:
        if event_bus:
            try:
                await event_bus.close()
                logger.info("Credit event bus closed")
            except Exception as e:
                logger.error(f"Error closing event bus: {e}")

        if subscription_client:
            await subscription_client.close()
        if credit_service:
            await credit_service.repository.close()
            logger.info("Credit service connections closed")


app = FastAPI(
    title="Credit Service",
    description="Member credit ledger",
    version=SERVICE_METADATA["version"],
    lifespan=lifespan,
)


# ====================
# Dependency Injection
# ====================


async def get_credit_service() -> CreditService:
    """Get credit service instance"""
    if not credit_service:
        raise HTTPException(status_code=503, detail="Credit service not initialized")
    return credit_service


async def get_member(session: SessionContext = Depends(require_session)) -> MemberContext:
    """Resolve the caller's subscription"""
    if not subscription_client:
        raise HTTPException(status_code=503, detail="Subscription backend not initialized")
    try:
        status = await subscription_client.check_subscription(session.access_token, user_id=session.user_id)
    except RemoteFailureError as e:
        logger.error(f"Subscription lookup failed for {session.user_id}: {e}")
        raise HTTPException(status_code=502, detail="Subscription backend unavailable")
    return MemberContext.from_subscription(session.user_id, status)


def _raise_for_result(result: CreditOperationResult) -> CreditOperationResult:
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
    if credit_service:
        db_health = await credit_service.repository.db.health_check()
        dependencies["postgres"] = "healthy" if db_health.get("healthy") else "unhealthy"
    dependencies["event_bus"] = "connected" if event_bus and event_bus.is_connected else "disabled"

    return HealthCheckResponse(
        status="healthy" if credit_service and dependencies.get("postgres") == "healthy" else "degraded",
        service=SERVICE_METADATA["service_name"],
        port=SERVICE_PORT,
        version=SERVICE_METADATA["version"],
        timestamp=datetime.now(timezone.utc).isoformat(),
        dependencies=dependencies,
    )


@app.get("/api/v1/credits/info")
async def service_info():
    """Service information"""
    return {**SERVICE_METADATA, **get_route_summary()}


# ====================
# Balance & History
# ====================


@app.get("/api/v1/credits/balance", response_model=CreditBalanceResponse)
async def get_balance(
    member: MemberContext = Depends(get_member),
    service: CreditService = Depends(get_credit_service),
):
    """Caller's balance, opening the account for a new subscriber"""
    try:
        return await service.get_balance(member)
    except Exception as e:
        logger.error(f"Error loading balance for {member.user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to load credit balance")


@app.get("/api/v1/credits/check", response_model=CreditCheckResult)
async def check_credits(
    required: int = Query(..., ge=0),
    member: MemberContext = Depends(get_member),
    service: CreditService = Depends(get_credit_service),
):
    """Whether the caller can pay `required` credits"""
    try:
        return await service.check_credits(member, required)
    except Exception as e:
        logger.error(f"Error checking credits for {member.user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to check credits")


@app.get("/api/v1/credits/transactions", response_model=TransactionListResponse)
async def list_transactions(
    limit: int = Query(default=config_manager.get("transaction_page_size", 20), ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    session: SessionContext = Depends(require_session),
    service: CreditService = Depends(get_credit_service),
):
    """Caller's transactions, newest first"""
    try:
        transactions = await service.get_transactions(session.user_id, limit=limit, offset=offset)
    except Exception as e:
        logger.error(f"Error listing transactions for {session.user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to list transactions")
    return TransactionListResponse(transactions=transactions, count=len(transactions))


@app.get("/api/v1/credits/reconcile", response_model=ReconciliationReport)
async def reconcile(
    session: SessionContext = Depends(require_session),
    service: CreditService = Depends(get_credit_service),
):
    """Compare the caller's balance with their ledger"""
    try:
        return await service.reconcile(session.user_id)
    except CreditAccountNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ====================
# Ledger Mutations
# ====================


@app.post("/api/v1/credits/use", response_model=CreditOperationResult)
async def use_credits(
    request: UseCreditRequest,
    member: MemberContext = Depends(get_member),
    service: CreditService = Depends(get_credit_service),
):
    """Use credits"""
    result = await service.use_credit(
        member, request.amount, request.description, service_request_id=request.service_request_id
    )
    return _raise_for_result(result)


@app.post("/api/v1/credits/add", response_model=CreditOperationResult)
async def add_credits(
    request: AddCreditsRequest,
    user_id: Optional[str] = Query(None, description="Target user (internal callers only)"),
    session: SessionContext = Depends(require_session),
    service: CreditService = Depends(get_credit_service),
):
    """Add purchased, bonus or refunded credits"""
    if user_id and not session.is_internal:
        raise HTTPException(status_code=403, detail="Only internal services may credit another user")
    target = user_id or session.user_id
    result = await service.add_credits(target, request.amount, request.transaction_type, request.description)
    return _raise_for_result(result)


# ====================
# Scheduled Jobs
# ====================


@app.post("/api/v1/credits/reset-monthly", response_model=MonthlyResetResult)
async def reset_monthly(
    session: SessionContext = Depends(require_internal_service),
    service: CreditService = Depends(get_credit_service),
):
    """Reset metered balances to the monthly allocation"""
    if not subscription_client:
        raise HTTPException(status_code=503, detail="Subscription backend not initialized")
    return await service.reset_monthly_credits(create_tier_lookup(subscription_client))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=SERVICE_PORT)
