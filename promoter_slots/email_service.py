"""
Email Service using Resend
Provides email functionality using MJML templates for responsive design
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import approval_template, slot_confirmation_template
from .errors import NotificationError

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY

SLOT_CONFIRMATION_SUBJECT = "✅ Confirmed: Your Brand Promoter Session"
APPROVAL_SUBJECT = "¡Felicitaciones! Has sido aprobada para el Programa de Promotoras"


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns a dict-like result with 'html' and 'errors'
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        html = getattr(result, "html", None)
        return html if html is not None else str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise NotificationError(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Send response dict

    Raises:
        NotificationError: email service missing or the send failed
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise NotificationError("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise NotificationError(f"Failed to send email: {str(e)}") from e


# ============================================
# Pre-built emails
# ============================================


async def send_slot_confirmation_email(
    to: str,
    user_name: str,
    slot_date: str,
    start_time: str,
    end_time: str,
    meeting_link: Optional[str] = None,
) -> dict:
    mjml_content = slot_confirmation_template(user_name, slot_date, start_time, end_time, meeting_link)
    return await send_email(to=to, subject=SLOT_CONFIRMATION_SUBJECT, mjml_content=mjml_content)


async def send_approval_email(to: str, user_name: str) -> dict:
    mjml_content = approval_template(user_name)
    return await send_email(to=to, subject=APPROVAL_SUBJECT, mjml_content=mjml_content)


class EmailNotifier:
    """Notifier used by the slot and approval services; swapped for a fake in tests"""

    async def send_slot_confirmation(self, user, slot) -> dict:
        return await send_slot_confirmation_email(
            to=user.email,
            user_name=user.name,
            slot_date=slot.date.strftime("%A, %B %d, %Y"),
            start_time=slot.start_time,
            end_time=slot.end_time,
            meeting_link=slot.meeting_link,
        )

    async def send_approval(self, user) -> dict:
        return await send_approval_email(to=user.email, user_name=user.name)
