"""
Account Microservice API

Profiles, roles, invites and session/profile resolution.
"""

import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

# Add parent directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../.."))
from core.auth_dependencies import require_admin, require_user
from core.config import settings
from core.logger import setup_service_logger
from core.postgres_client import create_datastore
from core.request_context import RequestContext

from .account_service import AccountService
from .factory import create_account_service
from .models import (
    AuthUser,
    HealthResponse,
    InviteUserRequest,
    ServiceInfo,
    UpdateProfileRequest,
    UpdateRoleRequest,
    UserInvite,
    UserListResponse,
    UserProfile,
)
from .protocols import AccountPersistenceError, AccountValidationError, ProfileNotFoundError
from .routes_registry import SERVICE_METADATA, get_route_summary

# Configure logger
logger = setup_service_logger("account_service", level=settings.logging.log_level)

# Global variables
account_service: Optional[AccountService] = None
datastore = None
SERVICE_PORT = settings.service_port("account_service")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management"""
    global account_service, datastore

    try:
        datastore = create_datastore(settings.infra)
        await datastore.initialize()
        app.state.datastore = datastore

        account_service = create_account_service(datastore, config=settings)

        logger.info(f"Account service started on port {SERVICE_PORT}")
        yield

    except Exception as e:
        logger.error(f"Failed to initialize account service: {e}")
        raise
    finally:
        if datastore:
            await datastore.close()
            logger.info("Account service database connections closed")


# Create FastAPI app
app = FastAPI(
    title="Account Service",
    description="Profiles, roles, invites and session resolution",
    version=SERVICE_METADATA["version"],
    lifespan=lifespan,
)


# ====================
# Dependency Injection
# ====================


async def get_account_service() -> AccountService:
    """Get account service instance"""
    if not account_service:
        raise HTTPException(status_code=503, detail="Account service not initialized")
    return account_service


# ====================
# Health Check and Service Info
# ====================


@app.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Health check"""
    dependencies = {}

    store = getattr(request.app.state, "datastore", None)
    try:
        if store is not None and hasattr(store, "health_check"):
            is_healthy = await store.health_check()
            dependencies["database"] = "healthy" if is_healthy else "unhealthy"
        else:
            dependencies["database"] = "unhealthy"
    except Exception:
        dependencies["database"] = "unhealthy"

    return HealthResponse(
        status="healthy" if all(v == "healthy" for v in dependencies.values()) else "degraded",
        service="account_service",
        port=SERVICE_PORT,
        version=SERVICE_METADATA["version"],
        dependencies=dependencies,
    )


@app.get("/api/v1/accounts/info", response_model=ServiceInfo)
async def get_service_info():
    """Get service information"""
    return ServiceInfo(
        service="account_service",
        version=SERVICE_METADATA["version"],
        description="Profiles, roles, invites and session resolution",
        capabilities=SERVICE_METADATA["capabilities"],
        routes=get_route_summary()["routes"],
    )


# ====================
# Session API
# ====================


@app.get("/api/v1/accounts/me", response_model=UserProfile)
async def get_current_profile(
    ctx: RequestContext = Depends(require_user),
    service: AccountService = Depends(get_account_service),
):
    """Resolve the profile for the current session (fallback on timeout)"""
    auth_user = AuthUser(
        id=ctx.acting_user_id,
        email=ctx.acting_email,
        full_name=ctx.acting_name,
    )
    try:
        return await service.resolve_profile(auth_user, ctx)
    except Exception as e:
        logger.error(f"Error resolving profile: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


# ====================
# User Management API (admin)
# ====================


@app.get("/api/v1/accounts", response_model=UserListResponse)
async def list_users(
    limit: int = Query(default=100, ge=1, le=500),
    ctx: RequestContext = Depends(require_admin),
    service: AccountService = Depends(get_account_service),
):
    """List users, newest first"""
    try:
        users = await service.list_users(limit=limit)
        return UserListResponse(users=users, count=len(users))
    except AccountPersistenceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"Error listing users: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


@app.post("/api/v1/accounts/invites", response_model=UserInvite)
async def invite_user(
    request: InviteUserRequest,
    ctx: RequestContext = Depends(require_admin),
    service: AccountService = Depends(get_account_service),
):
    """Invite a user with a role"""
    try:
        return await service.invite_user(str(request.email), request.role, ctx)
    except AccountValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except AccountPersistenceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"Error inviting user: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


@app.patch("/api/v1/accounts/{user_id}", response_model=UserProfile)
async def update_user_profile(
    user_id: str,
    request: UpdateProfileRequest,
    ctx: RequestContext = Depends(require_admin),
    service: AccountService = Depends(get_account_service),
):
    """Edit a user's profile"""
    try:
        return await service.update_profile(user_id, request)
    except ProfileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AccountValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except AccountPersistenceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating profile: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


@app.put("/api/v1/accounts/{user_id}/role", response_model=UserProfile)
async def update_user_role(
    user_id: str,
    request: UpdateRoleRequest,
    ctx: RequestContext = Depends(require_admin),
    service: AccountService = Depends(get_account_service),
):
    """Update a user's role"""
    try:
        return await service.update_user_role(user_id, request.role)
    except ProfileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AccountPersistenceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating role: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


# ====================
# Error Handling
# ====================


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(f"Unhandled exception in {request.url}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error occurred"}
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "microservices.account_service.main:app",
        host="0.0.0.0",
        port=SERVICE_PORT,
        reload=settings.debug,
        log_level=settings.logging.log_level.lower(),
    )
