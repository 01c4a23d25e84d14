"""
Email Service for TeamTime
==========================
Sends team invitation emails.

Supports both SMTP and SendGrid; SendGrid is used when an API key is configured.
"""

import asyncio
import html
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import aiosmtplib
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, Email, To, Content

from app.core.config import settings
from app.core.logging_config import logger


class EmailService:
    """Async email service using SMTP or SendGrid"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME
        self.app_name = settings.APP_NAME
        self.sendgrid_api_key = settings.SENDGRID_API_KEY
        self.use_sendgrid = settings.USE_SENDGRID and bool(self.sendgrid_api_key)

        if self.use_sendgrid:
            logger.info("[Email] Using SendGrid for email delivery")
        else:
            logger.info("[Email] Using SMTP for email delivery")

    @property
    def is_configured(self) -> bool:
        """Check if email service is properly configured"""
        if self.use_sendgrid:
            return bool(self.sendgrid_api_key)
        return bool(self.smtp_user and self.smtp_password)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """
        Send an email asynchronously.

        Returns True if successful, False otherwise.
        """
        if not self.is_configured:
            logger.warning("[Email] Email service not configured, skipping email send")
            return False

        if self.use_sendgrid:
            return await self._send_via_sendgrid(to_email, subject, html_content, text_content)
        else:
            return await self._send_via_smtp(to_email, subject, html_content, text_content)

    async def _send_via_sendgrid(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """Send email via SendGrid API"""
        try:
            message = Mail(
                from_email=Email(self.from_email, self.from_name),
                to_emails=To(to_email),
                subject=subject,
                html_content=Content("text/html", html_content)
            )

            if text_content:
                message.add_content(Content("text/plain", text_content))

            sg = SendGridAPIClient(self.sendgrid_api_key)
            # Run synchronous SendGrid call in thread pool
            loop = asyncio.get_running_loop()
            response = await loop.run_in_executor(None, sg.send, message)

            if response.status_code in [200, 201, 202]:
                logger.info(f"[Email/SendGrid] Successfully sent email to {to_email}: {subject}")
                return True
            else:
                logger.error(f"[Email/SendGrid] Failed with status {response.status_code}: {response.body}")
                return False

        except Exception as e:
            logger.error(f"[Email/SendGrid] Failed to send email to {to_email}: {e}")
            return False

    async def _send_via_smtp(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """Send email via SMTP"""
        try:
            message = MIMEMultipart("alternative")
            message["From"] = f"{self.from_name} <{self.from_email}>"
            message["To"] = to_email
            message["Subject"] = subject

            # Plain text first so clients prefer the HTML part
            if text_content:
                message.attach(MIMEText(text_content, "plain"))
            message.attach(MIMEText(html_content, "html"))

            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                start_tls=True
            )

            logger.info(f"[Email/SMTP] Successfully sent email to {to_email}: {subject}")
            return True

        except Exception as e:
            logger.error(f"[Email/SMTP] Failed to send email to {to_email}: {e}")
            return False

    def render_invitation(self, team_name: str, invitation_link: str):
        """Build (subject, html, text) for a team invitation"""
        safe_team = html.escape(team_name)
        safe_link = html.escape(invitation_link, quote=True)
        subject = f"[{self.app_name}] You have been invited to join {team_name}"

        html_content = f"""
        <!DOCTYPE html>
        <html>
        <head>
            <style>
                body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; }}
                .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
                .header {{ background: #4f46e5; color: white; padding: 30px; text-align: center; border-radius: 10px 10px 0 0; }}
                .content {{ background: #f9fafb; padding: 30px; border-radius: 0 0 10px 10px; }}
                .button {{ display: inline-block; background: #4f46e5; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; font-weight: 600; margin: 20px 0; }}
                .footer {{ text-align: center; margin-top: 30px; font-size: 12px; color: #6b7280; }}
            </style>
        </head>
        <body>
            <div class="container">
                <div class="header">
                    <h1>You're invited to {safe_team}</h1>
                </div>
                <div class="content">
                    <p>You have been invited to join <strong>{safe_team}</strong> on {html.escape(self.app_name)}.</p>
                    <p>Click the button below to accept the invitation:</p>
                    <p style="text-align: center;">
                        <a href="{safe_link}" class="button">Accept Invitation</a>
                    </p>
                    <p style="font-size: 14px; color: #6b7280;">
                        If the button doesn't work, copy and paste this link in your browser:<br>
                        <code style="background: #e5e7eb; padding: 4px 8px; border-radius: 4px; word-break: break-all;">{safe_link}</code>
                    </p>
                    <p style="font-size: 14px; color: #6b7280;">This link can only be used once. For your security, please don't share it.</p>
                </div>
                <div class="footer">
                    <p>&copy; {datetime.now(timezone.utc).year} {html.escape(self.app_name)}. All rights reserved.</p>
                    <p>If you weren't expecting this invitation, you can ignore this email.</p>
                </div>
            </div>
        </body>
        </html>
        """

        text_content = f"""
        You have been invited to join {team_name} on {self.app_name}.

        Accept the invitation by opening the link below:

        {invitation_link}

        This link can only be used once. For your security, please don't share it.

        - The {self.app_name} Team
        """

        return subject, html_content, text_content

    async def send_invitation_email(
        self,
        recipient_email: str,
        team_name: str,
        invitation_link: str
    ) -> bool:
        """Send a team invitation. Delivery failures are logged and reported as False."""
        subject, html_content, text_content = self.render_invitation(team_name, invitation_link)
        sent = await self.send_email(recipient_email, subject, html_content, text_content)
        if not sent:
            logger.warning(f"[Email] Invitation to {recipient_email} for team '{team_name}' was not delivered")
        return sent


# Singleton instance
email_service = EmailService()
