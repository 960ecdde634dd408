"""
Credit Service Routes Registry

Defines service metadata and routes exposed by the service info endpoint.
"""

SERVICE_METADATA = {
    "service_name": "credit_service",
    "version": "1.0.0",
    "tags": ["v1", "credits", "ledger", "microservice"],
    "capabilities": [
        "credit_balance",
        "credit_usage",
        "credit_purchase",
        "ledger_reconciliation",
        "monthly_reset",
    ],
}

ROUTES = [
    # Health endpoints
    {"path": "/health", "methods": ["GET"], "auth_required": False, "description": "Health check"},
    {"path": "/api/v1/credits/info", "methods": ["GET"], "auth_required": False, "description": "Service information"},

    # Balance
    {"path": "/api/v1/credits/balance", "methods": ["GET"], "auth_required": True, "description": "Get balance, opening the account on first use"},
    {"path": "/api/v1/credits/check", "methods": ["GET"], "auth_required": True, "description": "Check sufficient credits"},
    {"path": "/api/v1/credits/transactions", "methods": ["GET"], "auth_required": True, "description": "Recent transactions"},
    {"path": "/api/v1/credits/reconcile", "methods": ["GET"], "auth_required": True, "description": "Reconcile balance against ledger"},

    # Mutations
    {"path": "/api/v1/credits/use", "methods": ["POST"], "auth_required": True, "description": "Use credits"},
    {"path": "/api/v1/credits/add", "methods": ["POST"], "auth_required": True, "description": "Add purchased, bonus or refunded credits"},

    # Jobs
    {"path": "/api/v1/credits/reset-monthly", "methods": ["POST"], "auth_required": True, "description": "Monthly allocation reset (internal)"},
]


def get_route_summary():
    """Compact route metadata for the service info endpoint"""
    return {
        "route_count": len(ROUTES),
        "base_path": "/api/v1/credits",
        "public_count": sum(1 for r in ROUTES if not r["auth_required"]),
        "protected_count": sum(1 for r in ROUTES if r["auth_required"]),
        "routes": [r["path"] for r in ROUTES],
    }


__all__ = ["SERVICE_METADATA", "ROUTES", "get_route_summary"]
