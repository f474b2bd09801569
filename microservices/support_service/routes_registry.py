"""
Support Service Routes Registry

Defines service metadata and the route table exposed by the info endpoint.
"""

SERVICE_METADATA = {
    "service_name": "support_service",
    "version": "1.0.0",
    "tags": ["v1", "support", "tickets", "microservice"],
    "capabilities": [
        "ticket_creation",
        "ticket_replies",
        "ticket_status_workflow",
        "ticket_notifications",
        "realtime_stream",
    ],
}

ROUTES = [
    # Health endpoints
    {"path": "/health", "methods": ["GET"], "description": "Health check"},
    {"path": "/api/v1/tickets/info", "methods": ["GET"], "description": "Service information"},

    # Customer (guests may open tickets)
    {"path": "/api/v1/tickets", "methods": ["POST"], "description": "Open ticket"},
    {"path": "/api/v1/tickets/mine", "methods": ["GET"], "description": "List my tickets"},
    {"path": "/api/v1/tickets/{ticket_ref}", "methods": ["GET"], "description": "Ticket with replies"},
    {"path": "/api/v1/tickets/{ticket_ref}/replies", "methods": ["POST"], "description": "Add reply"},
    {"path": "/api/v1/tickets/{ticket_ref}/stream", "methods": ["WS"], "description": "Live replies"},

    # Admin
    {"path": "/api/v1/tickets", "methods": ["GET"], "description": "List all tickets"},
    {"path": "/api/v1/tickets/{ticket_ref}/status", "methods": ["PUT"], "description": "Update ticket status"},
]


def get_route_summary():
    """Get route metadata for the service info endpoint"""
    return {
        "route_count": len(ROUTES),
        "routes": sorted({r["path"] for r in ROUTES}),
        "api_version": "v1",
        "base_path": "/api/v1/tickets",
    }


__all__ = ["SERVICE_METADATA", "ROUTES", "get_route_summary"]
