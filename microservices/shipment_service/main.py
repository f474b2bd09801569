"""
Shipment Microservice API

Shipment creation, tracking, history events and admin mutations.
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
from core.auth_dependencies import (
    authorize_connection,
    get_request_context,
    is_admin,
    require_admin,
    require_user,
)
from core.change_feed import ChangeEventType, PostgresChangeFeed, stream_subscription
from core.config import settings
from core.logger import setup_service_logger
from core.postgres_client import create_datastore
from core.request_context import RequestContext

from .factory import create_shipment_service
from .models import (
    CreateShipmentRequest,
    DeleteShipmentResponse,
    HealthResponse,
    LedgerResult,
    LogEventRequest,
    ServiceInfo,
    Shipment,
    ShipmentListResponse,
    ShipmentUpdate,
    TrackingView,
)
from .protocols import (
    ShipmentConflictError,
    ShipmentNotFoundError,
    ShipmentPersistenceError,
    ShipmentServiceError,
    ShipmentValidationError,
)
from .routes_registry import SERVICE_METADATA, get_route_summary
from .shipment_service import ShipmentService

# Configure logger
logger = setup_service_logger("shipment_service", level=settings.logging.log_level)

# Global variables
shipment_service: Optional[ShipmentService] = None
datastore = None
change_feed: Optional[PostgresChangeFeed] = None
SERVICE_PORT = settings.service_port("shipment_service")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management"""
    global shipment_service, datastore, change_feed

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

        shipment_service = create_shipment_service(datastore, config=settings)

        logger.info(f"Shipment service started on port {SERVICE_PORT}")
        yield

    except Exception as e:
        logger.error(f"Failed to initialize shipment service: {e}")
        raise
    finally:
        if shipment_service and hasattr(shipment_service.notifier, "cleanup"):
            await shipment_service.notifier.cleanup()
        if change_feed:
            try:
                await change_feed.stop()
            except Exception as e:
                logger.error(f"Error stopping change feed: {e}")
        if datastore:
            await datastore.close()
            logger.info("Shipment service database connections closed")


# Create FastAPI app
app = FastAPI(
    title="Shipment Service",
    description="Shipment creation, tracking, history events and admin mutations",
    version=SERVICE_METADATA["version"],
    lifespan=lifespan,
)


# ====================
# Dependency Injection
# ====================


async def get_shipment_service() -> ShipmentService:
    """Get shipment service instance"""
    if not shipment_service:
        raise HTTPException(status_code=503, detail="Shipment service not initialized")
    return shipment_service


def _to_http(e: ShipmentServiceError) -> HTTPException:
    if isinstance(e, ShipmentNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ShipmentConflictError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, ShipmentValidationError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, ShipmentPersistenceError):
        return HTTPException(status_code=502, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


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
        service="shipment_service",
        port=SERVICE_PORT,
        version=SERVICE_METADATA["version"],
        dependencies=dependencies,
    )


@app.get("/api/v1/shipments/info", response_model=ServiceInfo)
async def get_service_info():
    """Get service information"""
    return ServiceInfo(
        service="shipment_service",
        version=SERVICE_METADATA["version"],
        description="Shipment creation, tracking, history events and admin mutations",
        capabilities=SERVICE_METADATA["capabilities"],
        routes=get_route_summary()["routes"],
    )


# ====================
# Customer API
# ====================


@app.post("/api/v1/shipments", response_model=Shipment, status_code=201)
async def create_shipment(
    request: CreateShipmentRequest,
    ctx: RequestContext = Depends(require_user),
    service: ShipmentService = Depends(get_shipment_service),
):
    """Create a shipment for the current (or impersonated) user"""
    try:
        return await service.create_shipment(request, ctx)
    except ShipmentServiceError as e:
        raise _to_http(e)
    except Exception as e:
        logger.error(f"Error creating shipment: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


@app.get("/api/v1/shipments", response_model=ShipmentListResponse)
async def list_shipments(
    limit: int = Query(default=100, ge=1, le=500),
    ctx: RequestContext = Depends(require_admin),
    service: ShipmentService = Depends(get_shipment_service),
):
    """All shipments, newest first"""
    try:
        shipments = await service.list_shipments(limit=limit)
        return ShipmentListResponse(shipments=shipments, count=len(shipments))
    except ShipmentServiceError as e:
        raise _to_http(e)
    except Exception as e:
        logger.error(f"Error listing shipments: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


@app.get("/api/v1/shipments/mine", response_model=ShipmentListResponse)
async def list_my_shipments(
    ctx: RequestContext = Depends(require_user),
    service: ShipmentService = Depends(get_shipment_service),
):
    """Shipments owned by the current (or impersonated) user"""
    try:
        shipments = await service.list_user_shipments(ctx)
        return ShipmentListResponse(shipments=shipments, count=len(shipments))
    except ShipmentServiceError as e:
        raise _to_http(e)
    except Exception as e:
        logger.error(f"Error listing user shipments: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


@app.get("/api/v1/shipments/{tracking_number}", response_model=Shipment)
async def get_shipment(
    tracking_number: str,
    request: Request,
    ctx: RequestContext = Depends(require_user),
    service: ShipmentService = Depends(get_shipment_service),
):
    """Full shipment record (owner or admin)"""
    try:
        shipment = await service.get_shipment(tracking_number)
    except ShipmentServiceError as e:
        raise _to_http(e)

    if shipment.user_id != ctx.effective_user_id and not await is_admin(request, ctx):
        raise HTTPException(status_code=403, detail="Not allowed to view this shipment")
    return shipment


@app.get("/api/v1/shipments/{tracking_number}/tracking", response_model=TrackingView)
async def track_shipment(
    tracking_number: str,
    service: ShipmentService = Depends(get_shipment_service),
):
    """Public tracking view"""
    try:
        return await service.track_shipment(tracking_number)
    except ShipmentServiceError as e:
        raise _to_http(e)
    except Exception as e:
        logger.error(f"Error tracking shipment: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


# ====================
# Admin API
# ====================


@app.patch("/api/v1/shipments/{tracking_number}", response_model=Shipment)
async def update_shipment(
    tracking_number: str,
    request: ShipmentUpdate,
    ctx: RequestContext = Depends(require_admin),
    service: ShipmentService = Depends(get_shipment_service),
):
    """Field-level update of status, payment, location, price or details"""
    try:
        return await service.update_shipment(tracking_number, request, ctx)
    except ShipmentServiceError as e:
        raise _to_http(e)
    except Exception as e:
        logger.error(f"Error updating shipment: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


@app.post("/api/v1/shipments/{tracking_number}/events", response_model=LedgerResult)
async def log_shipment_event(
    tracking_number: str,
    request: LogEventRequest,
    ctx: RequestContext = Depends(require_admin),
    service: ShipmentService = Depends(get_shipment_service),
):
    """Append a history event (duplicates of the last entry are skipped)"""
    try:
        return await service.log_shipment_event(tracking_number, request, ctx)
    except ShipmentServiceError as e:
        raise _to_http(e)
    except Exception as e:
        logger.error(f"Error logging shipment event: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


@app.post("/api/v1/shipments/{tracking_number}/payment/toggle", response_model=Shipment)
async def toggle_payment_status(
    tracking_number: str,
    ctx: RequestContext = Depends(require_admin),
    service: ShipmentService = Depends(get_shipment_service),
):
    """Flip payment between paid and unpaid"""
    try:
        return await service.toggle_payment_status(tracking_number, ctx)
    except ShipmentServiceError as e:
        raise _to_http(e)
    except Exception as e:
        logger.error(f"Error toggling payment: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


@app.delete("/api/v1/shipments/{tracking_number}", response_model=DeleteShipmentResponse)
async def delete_shipment(
    tracking_number: str,
    ctx: RequestContext = Depends(require_admin),
    service: ShipmentService = Depends(get_shipment_service),
):
    """Delete a shipment"""
    try:
        await service.delete_shipment(tracking_number)
        return DeleteShipmentResponse(success=True, tracking_number=tracking_number)
    except ShipmentServiceError as e:
        raise _to_http(e)
    except Exception as e:
        logger.error(f"Error deleting shipment: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


# ====================
# Realtime
# ====================


@app.websocket("/api/v1/shipments/{tracking_number}/stream")
async def stream_shipment(
    websocket: WebSocket,
    tracking_number: str,
    ctx: RequestContext = Depends(get_request_context),
):
    """Push row changes of one shipment to its owner or an admin"""
    if not await authorize_connection(websocket, ctx) or not shipment_service:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    try:
        shipment = await shipment_service.get_shipment(tracking_number)
    except ShipmentServiceError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    if shipment.user_id != ctx.effective_user_id and not await is_admin(websocket, ctx):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    feed = getattr(websocket.app.state, "change_feed", None)
    if feed is None:
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    await websocket.accept()
    subscription = feed.subscribe(
        "shipments",
        ChangeEventType.UPDATE,
        {"tracking_number": tracking_number},
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
        "microservices.shipment_service.main:app",
        host="0.0.0.0",
        port=SERVICE_PORT,
        reload=settings.debug,
        log_level=settings.logging.log_level.lower(),
    )
