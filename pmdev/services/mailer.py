from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Protocol

import httpx
from pydantic import BaseModel

from pmdev.config import settings

logger = logging.getLogger(__name__)


class DeliveryError(Exception):
    """The email provider did not accept the message."""


class OutboundEmail(BaseModel):
    """Provider-neutral message; replies go to ``reply_to``."""

    from_addr: str
    to_addr: str
    reply_to: str
    subject: str
    html: str
    text: str

    def to_resend_payload(self) -> dict:
        return {
            "from": self.from_addr,
            "to": [self.to_addr],
            "reply_to": self.reply_to,
            "subject": self.subject,
            "html": self.html,
            "text": self.text,
        }

    def to_mime(self) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.from_addr
        msg["To"] = self.to_addr
        msg["Reply-To"] = self.reply_to
        msg["Subject"] = self.subject
        msg.set_content(self.text)
        msg.add_alternative(self.html, subtype="html")
        return msg


class Mailer(Protocol):
    async def send(self, message: OutboundEmail) -> str | None: ...


class ResendMailer:
    """Send through the Resend HTTP API. One attempt, no retries."""

    def __init__(
        self,
        api_key: str,
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 10.0,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout

    async def send(self, message: OutboundEmail) -> str | None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    self.api_url,
                    json=message.to_resend_payload(),
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Resend request failed: {exc}") from exc

        try:
            message_id = resp.json().get("id")
        except (ValueError, AttributeError):
            message_id = None
        logger.info("Resend accepted message id=%s", message_id)
        return message_id


class SmtpMailer:
    """Send over SMTP in a worker thread so the event loop stays free."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        use_starttls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_starttls = use_starttls
        self.timeout = timeout

    async def send(self, message: OutboundEmail) -> str | None:
        try:
            await asyncio.to_thread(self._send_sync, message.to_mime())
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryError(f"SMTP delivery failed: {exc}") from exc
        logger.info("SMTP relay %s accepted message", self.host)
        return None

    def _send_sync(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_starttls:
                smtp.starttls(context=ssl.create_default_context())
            if self.username:
                smtp.login(self.username, self.password or "")
            smtp.send_message(msg)


def get_mailer() -> Mailer:
    """FastAPI dependency: the backend selected by EMAIL_BACKEND."""
    if settings.email_backend == "smtp":
        return SmtpMailer(
            host=settings.smtp_host or "",
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_pass,
            use_starttls=settings.smtp_starttls,
            timeout=settings.email_timeout_seconds,
        )
    return ResendMailer(
        api_key=settings.resend_api_key or "",
        api_url=settings.resend_api_url,
        timeout=settings.email_timeout_seconds,
    )
