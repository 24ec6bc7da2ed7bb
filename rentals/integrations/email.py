# =============================================================================
# Email Delivery Integration (AWS SES)
# =============================================================================
#
# Setup:
#   1. Verify your sending email in AWS SES console
#   2. Set env vars:
#      - AWS_SES_FROM_EMAIL=noreply@yourdomain.com
#      - AWS_ACCESS_KEY_ID=...
#      - AWS_SECRET_ACCESS_KEY=...
#      - AWS_REGION=us-east-1
#
# Without credentials the service only logs what it would have sent, which
# is what development and tests rely on.
#
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from rentals.config import Settings

logger = logging.getLogger(__name__)


# =============================================================================
# Email Templates
# =============================================================================

_BUTTON = (
    "background: #2E7D5B; color: white; padding: 12px 30px; "
    "text-decoration: none; border-radius: 6px; display: inline-block;"
)

TEMPLATES = {
    "welcome": {
        "subject": "Verify your email",
        "html": """
        <html>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="color: #333;">Welcome to Rentals!</h1>
            <p>Please verify your email by clicking the button below:</p>
            <p style="text-align: center; margin: 30px 0;">
                <a href="{verify_url}" style="{button}">Verify Email</a>
            </p>
            <p style="color: #666; font-size: 14px;">Or copy this link: {verify_url}</p>
            <p style="color: #666; font-size: 14px;">This link expires in {hours} hours.</p>
        </body>
        </html>
        """,
        "text": """
Welcome to Rentals!

Please verify your email by visiting:
{verify_url}

This link expires in {hours} hours.
        """,
    },

    "invite": {
        "subject": "You have been invited to Rentals",
        "html": """
        <html>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="color: #333;">Hi {name},</h1>
            <p>An administrator created a {role} account for you.</p>
            <p>Ask your administrator for your initial password and change it from your profile.</p>
            <p style="text-align: center; margin: 30px 0;">
                <a href="{link}" style="{button}">{link_label}</a>
            </p>
        </body>
        </html>
        """,
        "text": """
Hi {name},

An administrator created a {role} account for you.
Ask your administrator for your initial password and change it from your profile.

{link_label}: {link}
        """,
    },
}


# =============================================================================
# Email Service
# =============================================================================

class EmailService:
    """Send emails via AWS SES."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._client = None

    @property
    def client(self):
        """Lazy-load SES client."""
        if self._client is None:
            self._client = boto3.client(
                "ses",
                region_name=self.settings.aws_region,
                aws_access_key_id=self.settings.aws_access_key_id,
                aws_secret_access_key=self.settings.aws_secret_access_key,
            )
        return self._client

    @property
    def is_configured(self) -> bool:
        """Check if email sending is properly configured."""
        return self.settings.use_aws and bool(self.settings.aws_ses_from_email)

    async def send(self, to: str, template: str, data: dict[str, Any] | None = None) -> bool:
        """
        Send an email using a template.

        Args:
            to: Recipient email address
            template: Template name ("welcome" or "invite")
            data: Template variables to substitute

        Returns:
            True if sent successfully, False otherwise. Never raises.
        """
        if template not in TEMPLATES:
            logger.error(f"Unknown email template: {template}")
            return False

        tpl = TEMPLATES[template]
        data = {"button": _BUTTON, **(data or {})}

        try:
            html_body = tpl["html"].format(**data)
            text_body = tpl["text"].format(**data)
        except KeyError as e:
            logger.error(f"Missing template variable for '{template}': {e}")
            return False

        if not self.is_configured:
            logger.warning(f"Email not configured - would send '{template}' to {to}")
            if not self.settings.is_production:
                logger.info(f"Email content: {text_body.strip()}")
            return False

        try:
            response = self.client.send_email(
                Source=self.settings.aws_ses_from_email,
                Destination={"ToAddresses": [to]},
                Message={
                    "Subject": {"Data": tpl["subject"], "Charset": "UTF-8"},
                    "Body": {
                        "Html": {"Data": html_body, "Charset": "UTF-8"},
                        "Text": {"Data": text_body, "Charset": "UTF-8"},
                    },
                },
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return False

        logger.info(f"Email sent to {to}: {template} (MessageId: {response['MessageId']})")
        return True

    def verify_url(self, token: str) -> str:
        return f"{self.settings.app_url.rstrip('/')}/verify?token={token}"

    async def send_verification(self, email: str, token: str) -> bool:
        """Send the welcome email with a verification link."""
        return await self.send(
            to=email,
            template="welcome",
            data={
                "verify_url": self.verify_url(token),
                "hours": self.settings.verification_token_expire_hours,
            },
        )

    async def send_invite(self, email: str, name: str, role: str, token: str | None = None) -> bool:
        """
        Tell an admin-created account where to go.

        Unverified accounts get a verification link, verified ones a sign-in link.
        """
        if token:
            link, label = self.verify_url(token), "Verify Email"
        else:
            link, label = f"{self.settings.app_url.rstrip('/')}/login", "Sign In"
        return await self.send(
            to=email,
            template="invite",
            data={"name": name, "role": role, "link": link, "link_label": label},
        )
