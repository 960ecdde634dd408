"""
Membership Service Routes Registry

Defines service metadata and routes exposed by the service info endpoint.
"""

SERVICE_METADATA = {
    "service_name": "membership_service",
    "version": "1.0.0",
    "tags": ["v1", "membership", "tiers", "microservice"],
    "capabilities": [
        "tier_catalog",
        "service_access",
        "usage_metrics",
        "upgrade_advice",
        "checkout",
    ],
}

ROUTES = [
    # Health endpoints
    {"path": "/health", "methods": ["GET"], "auth_required": False, "description": "Health check"},
    {"path": "/api/v1/membership/info", "methods": ["GET"], "auth_required": False, "description": "Service information"},

    # Catalog
    {"path": "/api/v1/membership/tiers", "methods": ["GET"], "auth_required": False, "description": "List tiers"},
    {"path": "/api/v1/membership/tiers/{tier_id}", "methods": ["GET"], "auth_required": False, "description": "Get tier"},

    # Access
    {"path": "/api/v1/membership/access", "methods": ["GET"], "auth_required": True, "description": "Check category access"},
    {"path": "/api/v1/membership/upgrade-check", "methods": ["GET"], "auth_required": True, "description": "Check upgrade needed for a category"},

    # Usage & advice
    {"path": "/api/v1/membership/usage", "methods": ["GET"], "auth_required": True, "description": "Usage metrics this month"},
    {"path": "/api/v1/membership/recommendation", "methods": ["GET"], "auth_required": True, "description": "Upgrade recommendation"},
    {"path": "/api/v1/membership/upgrades", "methods": ["GET"], "auth_required": True, "description": "Available upgrades"},

    # Billing
    {"path": "/api/v1/membership/checkout", "methods": ["POST"], "auth_required": True, "description": "Start upgrade checkout"},
    {"path": "/api/v1/membership/portal", "methods": ["POST"], "auth_required": True, "description": "Open customer portal"},
    {"path": "/api/v1/membership/trial", "methods": ["GET"], "auth_required": True, "description": "Trial status"},
]


def get_route_summary():
    """Compact route metadata for the service info endpoint"""
    return {
        "route_count": len(ROUTES),
        "base_path": "/api/v1/membership",
        "public_count": sum(1 for r in ROUTES if not r["auth_required"]),
        "protected_count": sum(1 for r in ROUTES if r["auth_required"]),
        "routes": [r["path"] for r in ROUTES],
    }


__all__ = ["SERVICE_METADATA", "ROUTES", "get_route_summary"]
