"""Outbound email for CampusKnot (verification codes and password resets)."""

import asyncio
import smtplib
from email.message import EmailMessage
from typing import Optional

import aiohttp
import sentry_sdk

from campusknot.config import Settings, get_settings
from campusknot.utils.errors import ExternalServiceError
from campusknot.utils.logging import get_logger

logger = get_logger(__name__)

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"
SENDGRID_TIMEOUT_SECONDS = 10


def verification_email_html(app_name: str, body: str) -> str:
    """Render the single email template used for codes and temporary passwords."""
    return f"""
    <div style="font-family:Arial,sans-serif;max-width:480px;margin:0 auto;padding:32px;background:#1a1a2e;border-radius:16px;color:#fff;">
        <h1 style="text-align:center;color:#ee2b9d;">{app_name} 💕</h1>
        <div style="text-align:center;font-size:20px;color:#fff;background:#16213e;padding:20px;border-radius:12px;margin:20px 0;">
            {body}
        </div>
        <p style="text-align:center;color:#888;font-size:14px;">If you didn't request this, please ignore this email.</p>
    </div>
    """


class EmailSender:
    """
    Deliver HTML email.

    SendGrid is tried first when an API key is configured; SMTP is the
    fallback. Delivery failure raises ``ExternalServiceError`` so callers can
    decide whether the request must fail.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()

    @property
    def sender_address(self) -> str:
        return self.settings.SMTP_EMAIL or "noreply@campusknot.app"

    async def send(self, to_email: str, subject: str, html: str) -> None:
        with sentry_sdk.start_span(op="email.send", name=subject) as span:
            if self.settings.SENDGRID_API_KEY and self.settings.SENDGRID_API_KEY.strip():
                if await self._send_via_sendgrid(to_email, subject, html):
                    span.set_data("transport", "sendgrid")
                    return

            if not self.settings.SMTP_EMAIL or not self.settings.SMTP_PASSWORD:
                span.set_status("internal_error")
                raise ExternalServiceError("Email delivery is not configured", service="email")

            try:
                await asyncio.to_thread(self._send_via_smtp, to_email, subject, html)
            except (smtplib.SMTPException, OSError) as e:
                span.set_status("internal_error")
                logger.error("SMTP delivery failed", to=to_email, error=str(e))
                raise ExternalServiceError("Failed to send email", service="smtp", details={"error": str(e)}) from e

            span.set_data("transport", "smtp")
            logger.info("SMTP email sent", to=to_email)

    async def _send_via_sendgrid(self, to_email: str, subject: str, html: str) -> bool:
        payload = {
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {"email": self.sender_address, "name": f"{self.settings.APP_NAME} 💕"},
            "subject": subject,
            "content": [{"type": "text/html", "value": html}],
        }
        headers = {"Authorization": f"Bearer {self.settings.SENDGRID_API_KEY}"}
        try:
            timeout = aiohttp.ClientTimeout(total=SENDGRID_TIMEOUT_SECONDS)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(SENDGRID_URL, json=payload, headers=headers) as response:
                    if response.status < 300:
                        logger.info("SendGrid email sent", to=to_email)
                        return True
                    body = await response.text()
                    logger.warning("SendGrid rejected email, falling back to SMTP", status=response.status, body=body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("SendGrid failed, falling back to SMTP", error=str(e))
        return False

    def _send_via_smtp(self, to_email: str, subject: str, html: str) -> None:
        message = EmailMessage()
        message["From"] = f"{self.settings.APP_NAME} <{self.sender_address}>"
        message["To"] = to_email
        message["Subject"] = subject
        message.set_content("Open this email in an HTML-capable client.")
        message.add_alternative(html, subtype="html")

        with smtplib.SMTP(self.settings.SMTP_HOST, self.settings.SMTP_PORT, timeout=15) as smtp:
            smtp.starttls()
            smtp.login(self.settings.SMTP_EMAIL or "", self.settings.SMTP_PASSWORD or "")
            smtp.send_message(message)
