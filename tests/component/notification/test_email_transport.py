"""
Component Tests for the email transport and background dispatcher

The Resend client is exercised against httpx.MockTransport.
"""

import json

import httpx
import pytest

from core.config import EmailConfig
from microservices.notification_service.clients import (
    LogOnlyEmailClient,
    ResendEmailClient,
    create_email_client,
)
from microservices.notification_service.email_dispatcher import EmailDispatcher
from microservices.notification_service.models import EmailContent
from microservices.notification_service.protocols import EmailDeliveryError
from tests.component.mocks import MockEmailClient

EMAIL = EmailContent(subject="PerfectExpress | Tracking Update: PFX-1", text="Updated", html="<p>Updated</p>")


def resend_client(handler) -> ResendEmailClient:
    config = EmailConfig(resend_api_key="re_test_key", from_email="noreply@perfectexpress.test")
    http = httpx.AsyncClient(base_url=config.resend_base_url, transport=httpx.MockTransport(handler))
    return ResendEmailClient(config, http_client=http)


class TestResendEmailClient:

    @pytest.mark.asyncio
    async def test_send_posts_payload(self):
        captured = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append((request.url.path, json.loads(request.content)))
            return httpx.Response(200, json={"id": "em_123"})

        client = resend_client(handler)
        message_id = await client.send("a@x.com", "Subject", "Body", html="<p>Body</p>")
        await client.close()

        assert message_id == "em_123"
        path, payload = captured[0]
        assert path == "/emails"
        assert payload == {
            "from": "noreply@perfectexpress.test",
            "to": ["a@x.com"],
            "subject": "Subject",
            "text": "Body",
            "html": "<p>Body</p>",
        }

    @pytest.mark.asyncio
    async def test_html_omitted_when_absent(self):
        captured = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(json.loads(request.content))
            return httpx.Response(202, json={"id": "em_1"})

        client = resend_client(handler)
        await client.send("a@x.com", "Subject", "Body")
        await client.close()

        assert "html" not in captured[0]

    @pytest.mark.asyncio
    async def test_api_error(self):
        client = resend_client(lambda request: httpx.Response(422, json={"message": "invalid from"}))

        with pytest.raises(EmailDeliveryError):
            await client.send("a@x.com", "Subject", "Body")
        await client.close()

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = resend_client(handler)
        with pytest.raises(EmailDeliveryError):
            await client.send("a@x.com", "Subject", "Body")
        await client.close()


class TestCreateEmailClient:

    @pytest.mark.asyncio
    async def test_log_only_without_api_key(self):
        client = create_email_client(EmailConfig(resend_api_key=None))

        assert isinstance(client, LogOnlyEmailClient)
        assert await client.send("a@x.com", "Subject", "Body") is None

    @pytest.mark.asyncio
    async def test_resend_with_api_key(self):
        client = create_email_client(EmailConfig(resend_api_key="re_live"))

        assert isinstance(client, ResendEmailClient)
        await client.close()


class TestEmailDispatcher:

    @pytest.mark.asyncio
    async def test_dispatch_and_drain(self):
        transport = MockEmailClient()
        dispatcher = EmailDispatcher(transport)

        task = dispatcher.dispatch("a@x.com", EMAIL)
        await dispatcher.drain(timeout=1)

        assert task is not None
        assert dispatcher.sent == 1
        assert dispatcher.pending_count == 0
        assert transport.sent[0]["subject"] == EMAIL.subject

    @pytest.mark.asyncio
    async def test_missing_address_skipped(self):
        dispatcher = EmailDispatcher(MockEmailClient())

        assert dispatcher.dispatch(None, EMAIL) is None
        assert dispatcher.dispatch("", EMAIL) is None
        assert dispatcher.pending_count == 0

    @pytest.mark.asyncio
    async def test_failure_counted_not_raised(self):
        transport = MockEmailClient()
        transport.fail_for.add("bad@x.com")
        dispatcher = EmailDispatcher(transport)

        dispatcher.dispatch("bad@x.com", EMAIL)
        dispatcher.dispatch("good@x.com", EMAIL)
        await dispatcher.drain(timeout=1)

        assert dispatcher.failed == 1
        assert dispatcher.sent == 1

    @pytest.mark.asyncio
    async def test_close_closes_transport(self):
        transport = MockEmailClient()
        dispatcher = EmailDispatcher(transport)
        dispatcher.dispatch("a@x.com", EMAIL)

        await dispatcher.close()

        assert transport.closed is True
        assert transport.sent_to("a@x.com")
