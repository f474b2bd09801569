"""
Shipment Service Routes Registry

Defines service metadata and the route table exposed by the info endpoint.
"""

SERVICE_METADATA = {
    "service_name": "shipment_service",
    "version": "1.0.0",
    "tags": ["v1", "shipment", "tracking", "logistics", "microservice"],
    "capabilities": [
        "shipment_creation",
        "shipment_tracking",
        "history_ledger",
        "payment_status",
        "shipment_notifications",
        "realtime_stream",
    ],
}

ROUTES = [
    # Health endpoints
    {"path": "/health", "methods": ["GET"], "description": "Health check"},
    {"path": "/api/v1/shipments/info", "methods": ["GET"], "description": "Service information"},

    # Customer
    {"path": "/api/v1/shipments", "methods": ["POST"], "description": "Create shipment"},
    {"path": "/api/v1/shipments/mine", "methods": ["GET"], "description": "List my shipments"},
    {"path": "/api/v1/shipments/{tracking_number}", "methods": ["GET"], "description": "Get shipment"},
    {"path": "/api/v1/shipments/{tracking_number}/tracking", "methods": ["GET"], "description": "Public tracking view"},
    {"path": "/api/v1/shipments/{tracking_number}/stream", "methods": ["WS"], "description": "Live shipment updates"},

    # Admin
    {"path": "/api/v1/shipments", "methods": ["GET"], "description": "List shipments"},
    {"path": "/api/v1/shipments/{tracking_number}", "methods": ["PATCH"], "description": "Update shipment fields"},
    {"path": "/api/v1/shipments/{tracking_number}/events", "methods": ["POST"], "description": "Log history event"},
    {"path": "/api/v1/shipments/{tracking_number}/payment/toggle", "methods": ["POST"], "description": "Toggle payment status"},
    {"path": "/api/v1/shipments/{tracking_number}", "methods": ["DELETE"], "description": "Delete shipment"},
]


def get_route_summary():
    """Get route metadata for the service info endpoint"""
    return {
        "route_count": len(ROUTES),
        "routes": sorted({r["path"] for r in ROUTES}),
        "api_version": "v1",
        "base_path": "/api/v1/shipments",
    }


__all__ = ["SERVICE_METADATA", "ROUTES", "get_route_summary"]
