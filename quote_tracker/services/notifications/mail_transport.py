"""
Mail transports.

A transport sends one rendered message and reports whether the provider
accepted it. Acceptance is not proof of delivery.
"""

from dataclasses import dataclass
from typing import Protocol

import httpx

from quote_tracker.config.settings import EmailSettings
from quote_tracker.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class EmailMessage:
    """A rendered email ready to send."""
    to: str | list[str]
    subject: str
    html: str
    text: str | None = None
    
    @property
    def recipients(self) -> list[str]:
        return [self.to] if isinstance(self.to, str) else list(self.to)


class MailTransport(Protocol):
    """Raw send: True when the provider accepted the message."""
    
    async def send(self, message: EmailMessage) -> bool: ...


class ResendTransport:
    """
    Sends through the Resend REST API.
    
    Provider and network errors are logged and reported as False; retrying
    is the dispatcher's job.
    """
    
    def __init__(
        self,
        email_settings: EmailSettings,
        client: httpx.AsyncClient | None = None,
    ):
        self.settings = email_settings
        self.client = client
    
    def _payload(self, message: EmailMessage) -> dict:
        payload = {
            "from": self.settings.from_address,
            "to": message.recipients,
            "subject": message.subject,
            "html": message.html,
            "reply_to": self.settings.reply_to,
        }
        if message.text:
            payload["text"] = message.text
        return payload
    
    async def _post(self, client: httpx.AsyncClient, message: EmailMessage) -> httpx.Response:
        api_key = self.settings.api_key.get_secret_value() if self.settings.api_key else ""
        return await client.post(
            self.settings.api_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "content-type": "application/json",
            },
            json=self._payload(message),
            timeout=self.settings.timeout_seconds,
        )
    
    async def send(self, message: EmailMessage) -> bool:
        try:
            if self.client is not None:
                response = await self._post(self.client, message)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._post(client, message)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "email_rejected",
                status_code=exc.response.status_code,
                subject=message.subject,
                body=exc.response.text[:500],
            )
            return False
        except httpx.HTTPError as exc:
            logger.error(
                "email_send_error",
                error_type=type(exc).__name__,
                error_message=str(exc),
                subject=message.subject,
            )
            return False
        
        logger.info(
            "email_sent",
            status_code=response.status_code,
            subject=message.subject,
        )
        return True


class LogTransport:
    """Development transport: logs the message and accepts it."""
    
    def __init__(self):
        self.sent: list[EmailMessage] = []
    
    async def send(self, message: EmailMessage) -> bool:
        self.sent.append(message)
        logger.info(
            "email_logged",
            to=message.recipients,
            subject=message.subject,
        )
        return True


def build_transport(email_settings: EmailSettings) -> MailTransport:
    """Resend when an API key is configured, otherwise log only."""
    if email_settings.api_key and email_settings.api_key.get_secret_value():
        return ResendTransport(email_settings)
    logger.warning("email_api_key_missing", transport="log")
    return LogTransport()
