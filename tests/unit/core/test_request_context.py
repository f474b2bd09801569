"""
Unit Tests for RequestContext and identity header parsing
"""

import pytest
from pydantic import ValidationError

from core.auth_dependencies import get_request_context
from core.request_context import RequestContext


class TestSuppression:
    """Self-notification suppression rule"""

    def test_owner_acting_alone_is_suppressed(self):
        assert RequestContext.for_user("u1").suppresses_notification_to("u1") is True

    def test_admin_acting_on_other_user(self):
        assert RequestContext.for_user("admin").suppresses_notification_to("u1") is False

    def test_impersonation_never_suppresses(self):
        ctx = RequestContext.impersonating("admin", "u1")
        assert ctx.suppresses_notification_to("u1") is False

    def test_system_context(self):
        assert RequestContext.system().suppresses_notification_to("u1") is False

    def test_missing_owner(self):
        assert RequestContext.for_user("u1").suppresses_notification_to(None) is False


class TestRequestContext:

    def test_for_user(self):
        ctx = RequestContext.for_user("u1", email="u1@x.com")
        assert ctx.acting_user_id == "u1"
        assert ctx.effective_user_id == "u1"
        assert ctx.is_authenticated is True
        assert ctx.is_impersonating is False

    def test_system_is_anonymous(self):
        assert RequestContext.system().is_authenticated is False

    def test_frozen(self):
        ctx = RequestContext.for_user("u1")
        with pytest.raises(ValidationError):
            ctx.effective_user_id = "u2"


class TestGetRequestContext:
    """Header parsing"""

    @pytest.mark.asyncio
    async def test_anonymous(self):
        ctx = await get_request_context(None, None, None, None, None)
        assert ctx.is_authenticated is False

    @pytest.mark.asyncio
    async def test_plain_user(self):
        ctx = await get_request_context("u1", None, "u1@x.com", "Ada", None)
        assert ctx.acting_user_id == "u1"
        assert ctx.effective_user_id == "u1"
        assert ctx.acting_email == "u1@x.com"
        assert ctx.acting_name == "Ada"

    @pytest.mark.asyncio
    async def test_legacy_user_id_header(self):
        ctx = await get_request_context(None, "u1", None, None, None)
        assert ctx.acting_user_id == "u1"

    @pytest.mark.asyncio
    async def test_impersonation(self):
        ctx = await get_request_context("admin", None, None, None, "u1")
        assert ctx.is_impersonating is True
        assert ctx.acting_user_id == "admin"
        assert ctx.effective_user_id == "u1"

    @pytest.mark.asyncio
    async def test_impersonating_self_is_plain(self):
        ctx = await get_request_context("u1", None, None, None, "u1")
        assert ctx.is_impersonating is False
