"""
MJML Email Templates
All email templates using MJML for responsive, cross-client compatibility
"""

from typing import Optional

from .config import FRONTEND_URL
from .utils.sanitization import sanitize_string

# ServiceHub colors - Indigo/Slate
THEME = {
    "primary": "#4f46e5",
    "primary_light": "#e0e7ff",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
}

FONT_STACK = "-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif"


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    highlight_section: str = "",
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section background-color="#ffffff" padding="0 40px 32px 40px">
          <mj-column>
            <mj-button href="{cta_url}" background-color="{THEME['primary']}" color="#ffffff"
              font-weight="600" border-radius="8px" padding="12px 0" font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="{FONT_STACK}" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 40px 8px 40px">
          <mj-column>
            <mj-text font-size="22px" font-weight="700" color="{THEME['primary']}" padding="0">
              ServiceHub
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="24px 0 0 0" />
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="16px 40px 24px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>
            {content_sections}
          </mj-column>
        </mj-section>

        {highlight_section}

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              © ServiceHub. You're receiving this because you have an account with us.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _code_section(label: str, otp: str) -> str:
    return f"""
        <mj-section background-color="{THEME['primary_light']}" padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="14px" color="{THEME['text_muted']}" text-transform="uppercase" letter-spacing="1px" font-weight="600" padding="0 0 12px 0">
              {label}
            </mj-text>
            <mj-text align="center" font-size="36px" font-weight="700" color="{THEME['text_primary']}" letter-spacing="8px" font-family="'Courier New', monospace" padding="0">
              {otp}
            </mj-text>
          </mj-column>
        </mj-section>
    """


def admin_login_otp_template(user_name: str, otp: str, expiry_minutes: int) -> str:
    """Admin sign-in verification code"""
    content = f"""
    <mj-text>Hi {sanitize_string(user_name)},</mj-text>
    <mj-text>
      Use the code below to finish signing in to the ServiceHub admin console.
      It expires in {expiry_minutes} minutes.
    </mj-text>
    <mj-text color="{THEME['text_muted']}" font-size="14px">
      If you didn't try to sign in, change your password right away.
    </mj-text>
    """
    return get_base_template(
        title="Your admin sign-in code",
        preview_text=f"Your sign-in code is {otp}",
        content_sections=content,
        highlight_section=_code_section("Sign-in Code", otp),
    )


def password_reset_otp_template(user_name: str, otp: str, expiry_minutes: int) -> str:
    """Password reset verification code"""
    content = f"""
    <mj-text>Hi {sanitize_string(user_name)},</mj-text>
    <mj-text>
      We received a request to reset your ServiceHub password. Enter this code
      together with your new password. It expires in {expiry_minutes} minutes.
    </mj-text>
    <mj-text color="{THEME['text_muted']}" font-size="14px">
      If you didn't request a reset, you can safely ignore this email.
    </mj-text>
    """
    return get_base_template(
        title="Reset your password",
        preview_text=f"Your password reset code is {otp}",
        content_sections=content,
        highlight_section=_code_section("Reset Code", otp),
    )


def admin_reply_template(customer_name: str, provider_name: str, original_message: str, reply: str) -> str:
    """Admin reply to a customer's message about a provider"""
    content = f"""
    <mj-text>Hi {sanitize_string(customer_name)},</mj-text>
    <mj-text>Our team has replied to your message about <strong>{sanitize_string(provider_name)}</strong>.</mj-text>
    <mj-text color="{THEME['text_muted']}" font-size="14px" padding="8px 0 0 0">Your message</mj-text>
    <mj-text font-style="italic">{sanitize_string(original_message)}</mj-text>
    <mj-text color="{THEME['text_muted']}" font-size="14px" padding="8px 0 0 0">Our reply</mj-text>
    <mj-text>{sanitize_string(reply)}</mj-text>
    """
    return get_base_template(
        title="We replied to your message",
        preview_text=f"Reply about {sanitize_string(provider_name)}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/messages",
        cta_label="View Messages",
    )
