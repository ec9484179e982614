"""
Email service for invitation delivery through the Resend HTTP API.

Delivery is best-effort: callers get an EmailResult and decide how to report
a failure. Nothing here raises for transport or provider errors.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from core import config

logger = logging.getLogger(__name__)

EMAIL_NOT_CONFIGURED_NOTE = "Email not sent - RESEND_API_KEY not configured"
EMAIL_FAILED_NOTE = "Invitation created but the email could not be delivered"
EMAIL_TIMEOUT_SECONDS = 10.0


@dataclass
class EmailResult:
    """Outcome of an email send attempt."""
    sent: bool
    message_id: Optional[str] = None
    note: Optional[str] = None


class EmailService:
    """Renders invitation emails and posts them to Resend."""

    def __init__(self):
        template_dir = Path(__file__).parent.parent.parent / "templates" / "email"
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(['html', 'xml'])
        )

    def render(self, template_name: str, **context: object) -> str:
        """Render an email template with autoescaping."""
        return self.env.get_template(template_name).render(**context)

    async def send_email(self, to_email: str, subject: str, html: str) -> EmailResult:
        """
        Send one email.

        Returns:
            EmailResult with ``sent=False`` and a note when the API key is
            missing or delivery fails
        """
        api_key = config.RESEND_API_KEY
        if not api_key:
            logger.info("RESEND_API_KEY not configured, skipping email send")
            return EmailResult(sent=False, note=EMAIL_NOT_CONFIGURED_NOTE)

        payload = {
            "from": config.EMAIL_FROM,
            "to": [to_email],
            "subject": subject,
            "html": html,
        }
        try:
            async with httpx.AsyncClient(timeout=EMAIL_TIMEOUT_SECONDS) as client:
                response = await client.post(
                    config.RESEND_API_URL,
                    json=payload,
                    headers={"Authorization": f"Bearer {api_key}"},
                )
                response.raise_for_status()
                message_id = response.json().get("id")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to send email (continuing anyway): {e}")
            return EmailResult(sent=False, note=EMAIL_FAILED_NOTE)

        logger.info(f"Email sent successfully: {message_id}")
        return EmailResult(sent=True, message_id=message_id)

    async def send_staff_invitation(
        self,
        to_email: str,
        practice_name: str,
        role: str,
        department: Optional[str],
        accept_url: str,
    ) -> EmailResult:
        """Send a staff invitation email with the acceptance link."""
        html = self.render(
            "staff_invitation.html",
            practice_name=practice_name,
            role=role,
            department=department,
            accept_url=accept_url,
            expiry_days=config.INVITATION_EXPIRY_DAYS,
        )
        return await self.send_email(to_email, f"Invitation to join {practice_name} as {role}", html)

    async def send_patient_invitation(self, to_email: str, practice_name: str, accept_url: str) -> EmailResult:
        """Send a patient invitation email with the acceptance link."""
        html = self.render(
            "patient_invitation.html",
            practice_name=practice_name,
            accept_url=accept_url,
            expiry_days=config.INVITATION_EXPIRY_DAYS,
        )
        return await self.send_email(to_email, f"Invitation to join {practice_name} as a patient", html)


# Global instance
email_service = EmailService()
