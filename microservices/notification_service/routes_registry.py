"""
Notification Service Routes Registry

Defines the API routes exposed by notification_service.
This ensures route metadata is centralized and easy to maintain.
"""

from typing import Any, Dict

SERVICE_METADATA = {
    "service_name": "notification_service",
    "version": "1.0.0",
    "tags": ["v1", "notification", "email", "realtime", "microservice"],
    "capabilities": [
        "in_app_notifications",
        "email_notifications",
        "shipment_fan_out",
        "ticket_fan_out",
        "realtime_stream",
    ],
}

# Route definitions for notification_service
NOTIFICATION_SERVICE_ROUTES = [
    # Health & Info
    {"path": "/health", "methods": ["GET"], "auth_required": False, "description": "Health check"},
    {"path": "/api/v1/notifications/info", "methods": ["GET"], "auth_required": False, "description": "Service info"},

    # In-App Notifications
    {"path": "/api/v1/notifications", "methods": ["GET"], "auth_required": True, "description": "List notifications"},
    {"path": "/api/v1/notifications/unread-count", "methods": ["GET"], "auth_required": True, "description": "Get unread count"},
    {"path": "/api/v1/notifications/{notification_id}/read", "methods": ["POST"], "auth_required": True, "description": "Mark as read"},
    {"path": "/api/v1/notifications/read-all", "methods": ["POST"], "auth_required": True, "description": "Mark all as read"},

    # Realtime
    {"path": "/api/v1/notifications/stream", "methods": ["WS"], "auth_required": True, "description": "Live notification stream"},
]


def get_route_summary() -> Dict[str, Any]:
    """Route metadata for the service info endpoint"""
    return {
        "route_count": len(NOTIFICATION_SERVICE_ROUTES),
        "routes": [r["path"] for r in NOTIFICATION_SERVICE_ROUTES],
        "api_version": "v1",
        "base_path": "/api/v1/notifications",
    }


__all__ = ["SERVICE_METADATA", "NOTIFICATION_SERVICE_ROUTES", "get_route_summary"]
