"""
Email transport clients

ResendEmailClient talks to the Resend REST API over httpx. LogOnlyEmailClient
only logs the attempt and is the development default when no API key is
configured.
"""

import logging
from typing import Optional

import httpx

from core.config import EmailConfig

from ..protocols import EmailDeliveryError

logger = logging.getLogger(__name__)


class ResendEmailClient:
    """Resend API email client"""

    def __init__(self, config: EmailConfig, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.from_email = config.from_email
        self.http = http_client or httpx.AsyncClient(
            base_url=config.resend_base_url,
            headers={
                "Authorization": f"Bearer {config.resend_api_key}",
                "Content-Type": "application/json"
            },
            timeout=config.timeout_seconds
        )

    async def send(self, to: str, subject: str, text: str, html: Optional[str] = None) -> Optional[str]:
        email_data = {
            "from": self.from_email,
            "to": [to],
            "subject": subject,
            "text": text,
        }
        if html:
            email_data["html"] = html

        try:
            response = await self.http.post("/emails", json=email_data)
        except httpx.HTTPError as e:
            raise EmailDeliveryError(f"Email transport error for {to}: {e}") from e

        if response.status_code not in (200, 201, 202):
            raise EmailDeliveryError(f"Email API error: {response.status_code} - {response.text}")

        message_id = response.json().get("id")
        logger.info(f"Email sent to {to}: {subject} ({message_id})")
        return message_id

    async def close(self):
        await self.http.aclose()


class LogOnlyEmailClient:
    """Logs email attempts instead of sending them"""

    async def send(self, to: str, subject: str, text: str, html: Optional[str] = None) -> Optional[str]:
        logger.info(f"[Email] Sending to {to}: {subject}")
        logger.debug(f"[Email] Text content: {text}")
        return None

    async def close(self):
        pass


def create_email_client(config: Optional[EmailConfig] = None):
    """Resend client when an API key is configured, log-only otherwise"""
    config = config or EmailConfig.from_env()
    if config.enabled:
        return ResendEmailClient(config)
    logger.warning("Resend API key not configured. Emails will only be logged.")
    return LogOnlyEmailClient()


__all__ = ["ResendEmailClient", "LogOnlyEmailClient", "create_email_client"]
