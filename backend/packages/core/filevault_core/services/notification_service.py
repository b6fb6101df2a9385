"""
Notification service.

Delivers one-time codes and magic links by email through Amazon SES.
Delivery failures raise ``DeliveryError``; whether that is fatal is the
caller's decision.
"""

import asyncio
from html import escape
from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from filevault_core import get_logger
from filevault_core.config import MailConfig
from filevault_core.exceptions import DeliveryError

logger = get_logger(__name__)

_STYLE = """
      body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
      .container { max-width: 600px; margin: 0 auto; padding: 20px; }
      .code-box { background: #f4f4f4; padding: 20px; text-align: center; font-size: 32px;
                  font-weight: bold; letter-spacing: 5px; margin: 30px 0; border-radius: 5px; }
      .button { display: inline-block; padding: 15px 30px; background-color: #007bff;
                color: white; text-decoration: none; border-radius: 5px; margin: 20px 0; }
      .link-box { background: #f4f4f4; padding: 15px; margin: 20px 0; word-break: break-all;
                  border-radius: 5px; }
      .footer { margin-top: 30px; padding-top: 20px; border-top: 1px solid #ddd;
                font-size: 12px; color: #666; }
"""


class NotificationSender(Protocol):
    """Delivery channel for one-time credentials."""

    async def send_otp_email(self, to: str, code: str, expiry_minutes: int) -> None: ...

    async def send_magic_link_email(self, to: str, url: str, expiry_hours: int) -> None: ...


def _plural_hours(hours: int) -> str:
    return f"{hours} hour{'s' if hours != 1 else ''}"


class NotificationService:
    """SES-backed notification sender."""

    def __init__(self, config: MailConfig, client: Any | None = None) -> None:
        """
        Initialize notification service.

        Args:
            config: Mail configuration.
            client: Pre-built boto3 ``ses`` client (optional).
        """
        self.config = config
        self._client = client or boto3.client("ses", region_name=config.ses_region)

    async def send_otp_email(self, to: str, code: str, expiry_minutes: int) -> None:
        """
        Send a login code.

        Raises:
            DeliveryError: If the message could not be sent.
        """
        product = escape(self.config.product_name)
        subject = "Your Login Code"
        html_body = f"""<!DOCTYPE html>
<html>
  <head><meta charset="utf-8"><style>{_STYLE}</style></head>
  <body>
    <div class="container">
      <h2>Your Login Code</h2>
      <p>Use the following code to log in to your {product} account:</p>
      <div class="code-box">{escape(code)}</div>
      <p><strong>This code will expire in {expiry_minutes} minutes.</strong></p>
      <p>If you didn't request this code, you can safely ignore this email.</p>
      <div class="footer">
        <p>This is an automated message from {product}. Please do not reply to this email.</p>
      </div>
    </div>
  </body>
</html>"""
        text_body = (
            "Your Login Code\n\n"
            f"Use the following code to log in to your {self.config.product_name} account:\n\n"
            f"{code}\n\n"
            f"This code will expire in {expiry_minutes} minutes.\n\n"
            "If you didn't request this code, you can safely ignore this email.\n"
        )
        await self._send_email(to, subject, html_body, text_body)

    async def send_magic_link_email(self, to: str, url: str, expiry_hours: int) -> None:
        """
        Send a magic login link.

        Raises:
            DeliveryError: If the message could not be sent.
        """
        product = escape(self.config.product_name)
        link = escape(url, quote=True)
        expiry = _plural_hours(expiry_hours)
        subject = "Your Magic Login Link"
        html_body = f"""<!DOCTYPE html>
<html>
  <head><meta charset="utf-8"><style>{_STYLE}</style></head>
  <body>
    <div class="container">
      <h2>Your Magic Login Link</h2>
      <p>Click the button below to log in to your {product} account:</p>
      <a href="{link}" class="button">Log In Now</a>
      <p>Or copy and paste this link into your browser:</p>
      <div class="link-box">{link}</div>
      <p><strong>This link will expire in {expiry}.</strong></p>
      <p>If you didn't request this link, you can safely ignore this email.</p>
      <div class="footer">
        <p>This is an automated message from {product}. Please do not reply to this email.</p>
        <p>For security reasons, never share this link with anyone.</p>
      </div>
    </div>
  </body>
</html>"""
        text_body = (
            "Your Magic Login Link\n\n"
            f"Click the link below to log in to your {self.config.product_name} account:\n\n"
            f"{url}\n\n"
            f"This link will expire in {expiry}.\n\n"
            "If you didn't request this link, you can safely ignore this email.\n\n"
            "For security reasons, never share this link with anyone.\n"
        )
        await self._send_email(to, subject, html_body, text_body)

    async def _send_email(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        params = {
            "Source": self.config.sender,
            "Destination": {"ToAddresses": [to]},
            "Message": {
                "Subject": {"Data": subject, "Charset": "UTF-8"},
                "Body": {
                    "Html": {"Data": html_body, "Charset": "UTF-8"},
                    "Text": {"Data": text_body, "Charset": "UTF-8"},
                },
            },
        }
        try:
            await asyncio.to_thread(self._client.send_email, **params)
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to send email", extra={"subject": subject, "error": str(e)})
            raise DeliveryError("Email delivery failed") from e

        logger.info("Email sent", extra={"subject": subject})
