"""
Support Microservice API

Support tickets, replies and status workflow.
"""

import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request, WebSocket, status
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

from .factory import create_support_service
from .models import (
    AddReplyRequest,
    CreateTicketRequest,
    CreateTicketResult,
    HealthResponse,
    ReplyResult,
    SenderType,
    ServiceInfo,
    SupportTicket,
    TicketDetails,
    TicketListResponse,
    UpdateTicketStatusRequest,
)
from .protocols import (
    SupportServiceError,
    TicketNotFoundError,
    TicketPersistenceError,
    TicketValidationError,
)
from .routes_registry import SERVICE_METADATA, get_route_summary
from .support_service import SupportService

# Configure logger
logger = setup_service_logger("support_service", level=settings.logging.log_level)

# Global variables
support_service: Optional[SupportService] = None
datastore = None
change_feed: Optional[PostgresChangeFeed] = None
SERVICE_PORT = settings.service_port("support_service")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management"""
    global support_service, datastore, change_feed

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

        support_service = create_support_service(datastore, config=settings)

        logger.info(f"Support service started on port {SERVICE_PORT}")
        yield

    except Exception as e:
        logger.error(f"Failed to initialize support service: {e}")
        raise
    finally:
        if support_service and hasattr(support_service.notifier, "cleanup"):
            await support_service.notifier.cleanup()
        if change_feed:
            try:
                await change_feed.stop()
            except Exception as e:
                logger.error(f"Error stopping change feed: {e}")
        if datastore:
            await datastore.close()
            logger.info("Support service database connections closed")


# Create FastAPI app
app = FastAPI(
    title="Support Service",
    description="Support tickets, replies and status workflow",
    version=SERVICE_METADATA["version"],
    lifespan=lifespan,
)


# ====================
# Dependency Injection
# ====================


async def get_support_service() -> SupportService:
    """Get support service instance"""
    if not support_service:
        raise HTTPException(status_code=503, detail="Support service not initialized")
    return support_service


def _to_http(e: SupportServiceError) -> HTTPException:
    if isinstance(e, TicketNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, TicketValidationError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, TicketPersistenceError):
        return HTTPException(status_code=502, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


async def _load_accessible_ticket(
    ticket_ref: str,
    request: Request,
    ctx: RequestContext,
    service: SupportService,
) -> SupportTicket:
    """Ticket visible to its owner and to admins"""
    try:
        ticket = await service.get_ticket(ticket_ref)
    except SupportServiceError as e:
        raise _to_http(e)
    if ticket.user_id != ctx.effective_user_id and not await is_admin(request, ctx):
        raise HTTPException(status_code=403, detail="Not allowed to access this ticket")
    return ticket


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
        service="support_service",
        port=SERVICE_PORT,
        version=SERVICE_METADATA["version"],
        dependencies=dependencies,
    )


@app.get("/api/v1/tickets/info", response_model=ServiceInfo)
async def get_service_info():
    """Get service information"""
    return ServiceInfo(
        service="support_service",
        version=SERVICE_METADATA["version"],
        description="Support tickets, replies and status workflow",
        capabilities=SERVICE_METADATA["capabilities"],
        routes=get_route_summary()["routes"],
    )


# ====================
# Ticket API
# ====================


@app.post("/api/v1/tickets", response_model=CreateTicketResult, status_code=201)
async def create_ticket(
    body: CreateTicketRequest,
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
    service: SupportService = Depends(get_support_service),
):
    """Open a ticket; anonymous callers create guest tickets"""
    if ctx.is_impersonating and not await is_admin(request, ctx):
        raise HTTPException(status_code=403, detail="Only admins may impersonate users")
    try:
        return await service.create_ticket(body, ctx)
    except SupportServiceError as e:
        raise _to_http(e)
    except Exception as e:
        logger.error(f"Error creating ticket: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


@app.get("/api/v1/tickets", response_model=TicketListResponse)
async def list_tickets(
    ctx: RequestContext = Depends(require_admin),
    service: SupportService = Depends(get_support_service),
):
    """All tickets, newest first"""
    try:
        tickets = await service.get_all_tickets()
        return TicketListResponse(tickets=tickets, count=len(tickets))
    except SupportServiceError as e:
        raise _to_http(e)
    except Exception as e:
        logger.error(f"Error listing tickets: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


@app.get("/api/v1/tickets/mine", response_model=TicketListResponse)
async def list_my_tickets(
    ctx: RequestContext = Depends(require_user),
    service: SupportService = Depends(get_support_service),
):
    """Tickets of the current (or impersonated) user"""
    try:
        tickets = await service.get_user_tickets(ctx)
        return TicketListResponse(tickets=tickets, count=len(tickets))
    except SupportServiceError as e:
        raise _to_http(e)
    except Exception as e:
        logger.error(f"Error listing user tickets: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


@app.get("/api/v1/tickets/{ticket_ref}", response_model=TicketDetails)
async def get_ticket_details(
    ticket_ref: str,
    request: Request,
    ctx: RequestContext = Depends(require_user),
    service: SupportService = Depends(get_support_service),
):
    """Ticket and its replies (by id or TKT- number)"""
    await _load_accessible_ticket(ticket_ref, request, ctx, service)
    try:
        return await service.get_ticket_details(ticket_ref)
    except SupportServiceError as e:
        raise _to_http(e)


@app.post("/api/v1/tickets/{ticket_ref}/replies", response_model=ReplyResult)
async def add_reply(
    ticket_ref: str,
    body: AddReplyRequest,
    request: Request,
    ctx: RequestContext = Depends(require_user),
    service: SupportService = Depends(get_support_service),
):
    """
    Add a reply.

    Admins reply as admin unless they are impersonating a customer; only
    admins may send an admin reply.
    """
    ticket = await _load_accessible_ticket(ticket_ref, request, ctx, service)
    caller_is_admin = await is_admin(request, ctx)

    sender_type = body.sender_type
    if sender_type is None:
        sender_type = SenderType.ADMIN if caller_is_admin and not ctx.is_impersonating else SenderType.CUSTOMER
    elif sender_type == SenderType.ADMIN and not caller_is_admin:
        raise HTTPException(status_code=403, detail="Only admins may send admin replies")

    if sender_type == SenderType.ADMIN:
        sender_name = body.sender_name or ctx.acting_name or "Support"
    else:
        sender_name = body.sender_name or ticket.name

    try:
        return await service.add_reply(ticket.id, body.message, sender_type, sender_name, ctx)
    except SupportServiceError as e:
        raise _to_http(e)
    except Exception as e:
        logger.error(f"Error adding reply: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


@app.put("/api/v1/tickets/{ticket_ref}/status", response_model=SupportTicket)
async def update_ticket_status(
    ticket_ref: str,
    body: UpdateTicketStatusRequest,
    ctx: RequestContext = Depends(require_admin),
    service: SupportService = Depends(get_support_service),
):
    """Set ticket status"""
    try:
        return await service.update_ticket_status(ticket_ref, body.status, ctx)
    except SupportServiceError as e:
        raise _to_http(e)
    except Exception as e:
        logger.error(f"Error updating ticket status: {e}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


# ====================
# Realtime
# ====================


@app.websocket("/api/v1/tickets/{ticket_ref}/stream")
async def stream_ticket_replies(
    websocket: WebSocket,
    ticket_ref: str,
    ctx: RequestContext = Depends(get_request_context),
):
    """Push new replies of one ticket to its owner or an admin"""
    if not await authorize_connection(websocket, ctx) or not support_service:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    try:
        ticket = await support_service.get_ticket(ticket_ref)
    except SupportServiceError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    if ticket.user_id != ctx.effective_user_id and not await is_admin(websocket, ctx):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    feed = getattr(websocket.app.state, "change_feed", None)
    if feed is None:
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    await websocket.accept()
    subscription = feed.subscribe(
        "ticket_replies",
        ChangeEventType.INSERT,
        {"ticket_id": ticket.id},
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
        "microservices.support_service.main:app",
        host="0.0.0.0",
        port=SERVICE_PORT,
        reload=settings.debug,
        log_level=settings.logging.log_level.lower(),
    )
