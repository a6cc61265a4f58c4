"""
Email delivery through Resend, with MJML templates compiled to HTML
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, OTP_EXPIRY_MINUTES, RESEND_API_KEY
from .email_templates import (
    admin_login_otp_template,
    admin_reply_template,
    password_reset_otp_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailDeliveryError(Exception):
    """Raised when an email could not be handed to the provider"""


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise EmailDeliveryError(f"Failed to compile MJML template: {e}") from e

    # Recent mjml releases return an object/dict carrying html and errors
    errors = getattr(result, "errors", None) or (result.get("errors") if isinstance(result, dict) else None)
    if errors:
        logger.warning(f"MJML compilation warnings: {errors}")
    html = getattr(result, "html", None)
    if html is None and isinstance(result, dict):
        html = result.get("html", "")
    return html if html is not None else str(result)


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend.

    Raises:
        EmailDeliveryError: when no API key is configured or Resend rejects it
    """
    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailDeliveryError("Email service not configured")

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
        raise EmailDeliveryError(f"Failed to send email: {e}") from e


# ============================================
# Pre-built emails
# ============================================


async def send_admin_login_otp(to: str, user_name: str, otp: str) -> dict:
    return await send_email(
        to=to,
        subject="Your ServiceHub admin sign-in code",
        mjml_content=admin_login_otp_template(user_name, otp, OTP_EXPIRY_MINUTES),
    )


async def send_password_reset_otp(to: str, user_name: str, otp: str) -> dict:
    return await send_email(
        to=to,
        subject="Reset your ServiceHub password",
        mjml_content=password_reset_otp_template(user_name, otp, OTP_EXPIRY_MINUTES),
    )


async def send_admin_reply_email(
    to: str, customer_name: str, provider_name: str, original_message: str, reply: str
) -> dict:
    return await send_email(
        to=to,
        subject=f"Reply to your message about {provider_name}",
        mjml_content=admin_reply_template(customer_name, provider_name, original_message, reply),
    )
