"""
Booking Service Routes Registry

Defines service metadata and routes exposed by the service info endpoint.
"""

SERVICE_METADATA = {
    "service_name": "booking_service",
    "version": "1.0.0",
    "tags": ["v1", "bookings", "partners", "microservice"],
    "capabilities": [
        "partner_catalog",
        "booking_quotes",
        "booking_creation",
        "booking_cancellation",
    ],
}

ROUTES = [
    # Health endpoints
    {"path": "/health", "methods": ["GET"], "auth_required": False, "description": "Health check"},
    {"path": "/api/v1/bookings/info", "methods": ["GET"], "auth_required": False, "description": "Service information"},

    # Catalog
    {"path": "/api/v1/bookings/services", "methods": ["GET"], "auth_required": False, "description": "Active partner services"},
    {"path": "/api/v1/bookings/cost", "methods": ["GET"], "auth_required": True, "description": "Booking quote for the caller"},

    # Bookings
    {"path": "/api/v1/bookings", "methods": ["POST"], "auth_required": True, "description": "Create booking"},
    {"path": "/api/v1/bookings/{request_id}/cancel", "methods": ["POST"], "auth_required": True, "description": "Cancel booking"},
]


def get_route_summary():
    """Compact route metadata for the service info endpoint"""
    return {
        "route_count": len(ROUTES),
        "base_path": "/api/v1/bookings",
        "public_count": sum(1 for r in ROUTES if not r["auth_required"]),
        "protected_count": sum(1 for r in ROUTES if r["auth_required"]),
        "routes": [r["path"] for r in ROUTES],
    }


__all__ = ["SERVICE_METADATA", "ROUTES", "get_route_summary"]
