"""
Account Service Routes Registry

Defines service metadata and the route table exposed by the info endpoint.
"""

SERVICE_METADATA = {
    "service_name": "account_service",
    "version": "1.0.0",
    "tags": ["v1", "account", "profiles", "microservice"],
    "capabilities": [
        "session_resolution",
        "profile_management",
        "role_management",
        "user_invites",
    ],
}

ROUTES = [
    # Health endpoints
    {"path": "/health", "methods": ["GET"], "description": "Health check"},
    {"path": "/api/v1/accounts/info", "methods": ["GET"], "description": "Service information"},

    # Session
    {"path": "/api/v1/accounts/me", "methods": ["GET"], "description": "Resolve current user profile"},

    # Admin user management
    {"path": "/api/v1/accounts", "methods": ["GET"], "description": "List users"},
    {"path": "/api/v1/accounts/{user_id}", "methods": ["PATCH"], "description": "Edit user profile"},
    {"path": "/api/v1/accounts/{user_id}/role", "methods": ["PUT"], "description": "Update user role"},
    {"path": "/api/v1/accounts/invites", "methods": ["POST"], "description": "Invite user"},
]


def get_route_summary():
    """Get route metadata for the service info endpoint"""
    return {
        "route_count": len(ROUTES),
        "routes": [r["path"] for r in ROUTES],
        "api_version": "v1",
        "base_path": "/api/v1/accounts",
    }


__all__ = ["SERVICE_METADATA", "ROUTES", "get_route_summary"]
