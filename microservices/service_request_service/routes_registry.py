"""
Service Request Service Routes Registry

Defines service metadata and routes exposed by the service info endpoint.
"""

SERVICE_METADATA = {
    "service_name": "service_request_service",
    "version": "1.0.0",
    "tags": ["v1", "service-requests", "pipeline", "microservice"],
    "capabilities": [
        "credit_costing",
        "status_flow",
        "partner_assignment",
        "sla_metrics",
        "partner_commissions",
    ],
}

ROUTES = [
    # Health endpoints
    {"path": "/health", "methods": ["GET"], "auth_required": False, "description": "Health check"},
    {"path": "/api/v1/service-requests/info", "methods": ["GET"], "auth_required": False, "description": "Service information"},

    # Pure lookups
    {"path": "/api/v1/service-requests/cost", "methods": ["GET"], "auth_required": False, "description": "Credit cost quote"},
    {"path": "/api/v1/service-requests/transitions/{status}", "methods": ["GET"], "auth_required": False, "description": "Allowed next statuses"},
    {"path": "/api/v1/service-requests/commission", "methods": ["GET"], "auth_required": False, "description": "Partner commission for an amount"},

    # Requests
    {"path": "/api/v1/service-requests", "methods": ["GET"], "auth_required": True, "description": "List caller's requests"},
    {"path": "/api/v1/service-requests/{request_id}", "methods": ["GET"], "auth_required": True, "description": "Get request"},
    {"path": "/api/v1/service-requests/{request_id}/updates", "methods": ["GET"], "auth_required": True, "description": "Request audit trail"},
    {"path": "/api/v1/service-requests/{request_id}/sla", "methods": ["GET"], "auth_required": True, "description": "Response-time SLA"},

    # Operator actions
    {"path": "/api/v1/service-requests/{request_id}/status", "methods": ["POST"], "auth_required": True, "description": "Advance status (internal)"},
    {"path": "/api/v1/service-requests/{request_id}/assign-partner", "methods": ["POST"], "auth_required": True, "description": "Assign partner (internal)"},
    {"path": "/api/v1/service-requests/partners/{partner_id}/performance", "methods": ["GET"], "auth_required": True, "description": "Partner earnings (internal)"},
]


def get_route_summary():
    """Compact route metadata for the service info endpoint"""
    return {
        "route_count": len(ROUTES),
        "base_path": "/api/v1/service-requests",
        "public_count": sum(1 for r in ROUTES if not r["auth_required"]),
        "protected_count": sum(1 for r in ROUTES if r["auth_required"]),
        "routes": [r["path"] for r in ROUTES],
    }


__all__ = ["SERVICE_METADATA", "ROUTES", "get_route_summary"]
