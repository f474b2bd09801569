"""
FastAPI Authentication Dependencies for Microservices

The gateway authenticates the caller and forwards the identity headers:

    X-User-Id               authenticated principal (or legacy ``user-id``)
    X-User-Email            principal email (optional)
    X-User-Name             principal display name (optional)
    X-Impersonate-User-Id   admin-only: act on behalf of this user

Role is read from the ``profiles`` table and is the only authorization signal.
"""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.requests import HTTPConnection

from core.datastore import DatastoreError
from core.request_context import RequestContext

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


async def get_request_context(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    legacy_user_id: Optional[str] = Header(None, alias="user-id"),
    x_user_email: Optional[str] = Header(None, alias="X-User-Email"),
    x_user_name: Optional[str] = Header(None, alias="X-User-Name"),
    x_impersonate_user_id: Optional[str] = Header(None, alias="X-Impersonate-User-Id"),
) -> RequestContext:
    """
    Build the request context from identity headers.

    Anonymous callers get an empty context (guest ticket submission and public
    tracking are allowed).
    """
    actor = x_user_id or legacy_user_id
    if not actor:
        return RequestContext.system()

    if x_impersonate_user_id and x_impersonate_user_id != actor:
        return RequestContext(
            acting_user_id=actor,
            effective_user_id=x_impersonate_user_id,
            is_impersonating=True,
            acting_email=x_user_email,
            acting_name=x_user_name,
        )

    return RequestContext.for_user(actor, email=x_user_email, name=x_user_name)


async def _actor_role(request: HTTPConnection, user_id: str) -> Optional[str]:
    datastore = getattr(request.app.state, "datastore", None)
    if datastore is None:
        raise HTTPException(status_code=503, detail="Datastore not initialized")
    try:
        profile = await datastore.select_one("profiles", {"id": user_id})
    except DatastoreError as e:
        logger.error(f"Failed to resolve role for {user_id}: {e}")
        raise HTTPException(status_code=503, detail="Unable to verify user role")
    return profile.get("role") if profile else None


async def require_user(
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
) -> RequestContext:
    """Require an authenticated caller; impersonation requires the admin role"""
    if not ctx.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User authentication required"
        )

    if ctx.is_impersonating:
        role = await _actor_role(request, ctx.acting_user_id)
        if role != ADMIN_ROLE:
            logger.warning(f"Rejected impersonation attempt by non-admin {ctx.acting_user_id}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only admins may impersonate users"
            )

    return ctx


async def require_admin(
    request: Request,
    ctx: RequestContext = Depends(require_user),
) -> RequestContext:
    """Require the acting principal to hold the admin role"""
    role = await _actor_role(request, ctx.acting_user_id)
    if role != ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required"
        )
    return ctx


async def is_admin(request: HTTPConnection, ctx: RequestContext) -> bool:
    """True when the acting principal holds the admin role"""
    if not ctx.is_authenticated:
        return False
    return await _actor_role(request, ctx.acting_user_id) == ADMIN_ROLE


async def authorize_connection(connection: HTTPConnection, ctx: RequestContext) -> bool:
    """
    Websocket variant of ``require_user``: False instead of raising.

    Anonymous connections and impersonation by non-admins are refused.
    """
    if not ctx.is_authenticated:
        return False
    if ctx.is_impersonating:
        try:
            return await _actor_role(connection, ctx.acting_user_id) == ADMIN_ROLE
        except HTTPException:
            return False
    return True


__all__ = [
    "get_request_context",
    "authorize_connection",
    "require_user",
    "require_admin",
    "is_admin",
    "ADMIN_ROLE",
]
