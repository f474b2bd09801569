"""
Notification Microservice API

In-app notifications for the effective user plus a live notification stream.
Dispatching (shipment, ticket and admin fan-out) is invoked in-process by the
shipment and support services.
"""

import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, WebSocket, status
from fastapi.responses import JSONResponse

# Add parent directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../.."))
from core.auth_dependencies import authorize_connection, get_request_context, require_user
from core.change_feed import ChangeEventType, PostgresChangeFeed, stream_subscription
from core.config import settings
from core.logger import setup_service_logger
from core.postgres_client import create_datastore
from core.request_context import RequestContext

from .factory import create_notification_service
from .models import (
    HealthResponse,
    MarkReadResponse,
    NotificationListResponse,
    ServiceInfo,
    UnreadCountResponse,
)
from .notification_service import NotificationService
from .protocols import (
    NotificationNotFoundError,
    NotificationPersistenceError,
    NotificationValidationError,
)
from .routes_registry import SERVICE_METADATA, get_route_summary

# Configure logger
logger = setup_service_logger("notification_service", level=settings.logging.log_level)

# Global variables
notification_service: Optional[NotificationService] = None
datastore = None
change_feed: Optional[PostgresChangeFeed] = None
SERVICE_PORT = settings.service_port("notification_service")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management"""
    global notification_service, datastore, change_feed

    try:
        datastore = create_datastore(settings.infra)
        await datastore.initialize()
        app.state.datastore = datastore

        # Realtime change feed
        try:
            change_feed = PostgresChangeFeed(settings.infra)
            await change_feed.start()
            app.state.change_feed = change_feed
        except Exception as e:
            logger.warning(f"Failed to start change feed: {e}. Continuing without live streams.")
            change_feed = None

        notification_service = create_notification_service(datastore, config=settings)

        logger.info(f"Notification service started on port {SERVICE_PORT}")
        yield

    except Exception as e:
        logger.error(f"Failed to initialize notification service: {e}")
        raise
    finally:
        if notification_service:
            await notification_service.cleanup()
        if change_feed:
            try:
                await change_feed.stop()
            except Exception as e:
                logger.error(f"Error stopping change feed: {e}")
        if datastore:
            await datastore.close()
            logger.info("Notification service database connections closed")


# Create FastAPI app
app = FastAPI(
    title="Notification Service",
    description="In-app notifications and live notification stream",
    version=SERVICE_METADATA["version"],
    lifespan=lifespan,
)


# ====================
# Dependency Injection
# ====================


async def get_notification_service() -> NotificationService:
    """Get notification service instance"""
    if not notification_service:
        raise HTTPException(status_code=503, detail="Notification service not initialized")
    return notification_service


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

    dependencies["change_feed"] = "healthy" if getattr(request.app.state, "change_feed", None) else "unavailable"

    return HealthResponse(
        status="healthy" if dependencies["database"] == "healthy" else "degraded",
        service="notification_service",
        port=SERVICE_PORT,
        version=SERVICE_METADATA["version"],
        dependencies=dependencies,
    )


@app.get("/api/v1/notifications/info", response_model=ServiceInfo)
async def get_service_info():
    """Get service information"""
    return ServiceInfo(
        service="notification_service",
        version=SERVICE_METADATA["version"],
        description="In-app notifications and live notification stream",
        capabilities=SERVICE_METADATA["capabilities"],
        routes=get_route_summary()["routes"],
    )


# ====================
# In-App Notifications API
# ====================


@app.get("/api/v1/notifications", response_model=NotificationListResponse)
async def list_notifications(
    limit: int = Query(default=50, ge=1, le=200),
    ctx: RequestContext = Depends(require_user),
    service: NotificationService = Depends(get_notification_service),
):
    """Notifications for the effective user, newest first"""
    try:
        notifications = await service.fetch_notifications(ctx, limit=limit)
        return NotificationListResponse(
            notifications=notifications,
            count=len(notifications),
            unread_count=sum(1 for n in notifications if not n.is_read),
        )
    except NotificationValidationError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except NotificationPersistenceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"Error listing notifications: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


@app.get("/api/v1/notifications/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    ctx: RequestContext = Depends(require_user),
    service: NotificationService = Depends(get_notification_service),
):
    """Unread notification count"""
    try:
        return UnreadCountResponse(unread_count=await service.get_unread_count(ctx))
    except NotificationPersistenceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"Error counting unread notifications: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


@app.post("/api/v1/notifications/read-all", response_model=MarkReadResponse)
async def mark_all_read(
    ctx: RequestContext = Depends(require_user),
    service: NotificationService = Depends(get_notification_service),
):
    """Mark every notification of the effective user read"""
    try:
        updated = await service.mark_all_as_read(ctx)
        return MarkReadResponse(success=True, updated=updated)
    except NotificationPersistenceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"Error marking notifications read: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


@app.post("/api/v1/notifications/{notification_id}/read", response_model=MarkReadResponse)
async def mark_read(
    notification_id: str,
    ctx: RequestContext = Depends(require_user),
    service: NotificationService = Depends(get_notification_service),
):
    """Mark one notification read"""
    try:
        await service.mark_as_read(notification_id, ctx)
        return MarkReadResponse(success=True, updated=1)
    except NotificationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NotificationPersistenceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"Error marking notification read: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


# ====================
# Realtime
# ====================


@app.websocket("/api/v1/notifications/stream")
async def stream_notifications(
    websocket: WebSocket,
    ctx: RequestContext = Depends(get_request_context),
):
    """Push new notifications of the effective user as they are inserted"""
    if not await authorize_connection(websocket, ctx):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    feed = getattr(websocket.app.state, "change_feed", None)
    if feed is None:
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    await websocket.accept()
    subscription = feed.subscribe(
        "notifications",
        ChangeEventType.INSERT,
        {"user_id": ctx.effective_user_id},
    )
    await stream_subscription(websocket, subscription)


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
        "microservices.notification_service.main:app",
        host="0.0.0.0",
        port=SERVICE_PORT,
        reload=settings.debug,
        log_level=settings.logging.log_level.lower(),
    )
