import logging
from abc import ABC, abstractmethod
from html import escape
from typing import Any, Optional

from ..config import Settings, get_settings

logger = logging.getLogger(__name__)

STAFF_INVITATION_TEMPLATE = "staff_invitation"
USER_SETUP_TEMPLATE = "user_setup"
PASSWORD_RESET_TEMPLATE = "password_reset"

PROFILE_TYPE_NAMES = {
    "student": "Student",
    "parent": "Parent/Guardian",
    "adult": "Adult Student",
    "teacher": "Teacher",
    "admin": "Administrator",
    "manager": "Manager",
}


class Notifier(ABC):
    """Outbound message delivery.

    ``send`` reports delivery as a bool and never raises; callers treat a
    failed send as a secondary status, not an error.
    """

    def init(self) -> None:
        pass

    def close(self) -> None:
        pass

    @abstractmethod
    def send(self, to: str, template: str, data: dict[str, Any]) -> bool:
        ...


def render(template: str, data: dict[str, Any], settings: Settings) -> tuple[str, str]:
    """Return (subject, html) for a template name."""
    org = escape(settings.email_from_name)
    first_name = escape(str(data.get("first_name", "")))

    if template == STAFF_INVITATION_TEMPLATE:
        role = escape(str(data["role"]))
        url = f"{settings.frontend_base_url}/accept-invitation?token={data['token']}"
        subject = f"Invitation to join {settings.email_from_name} as {data['role']}"
        html = f"""
        <div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">
            <h2>You're invited to join {org}</h2>
            <p>Hi {first_name},</p>
            <p>You've been invited to join <strong>{org}</strong> as a <strong>{role}</strong>.</p>
            <p><a href="{escape(url)}" style="display: inline-block; padding: 12px 24px; background: #eab308; color: #fff; text-decoration: none; border-radius: 6px;">Accept Invitation</a></p>
            <p style="color: #666; font-size: 0.875rem;">This invitation expires in {data.get('expiry_days', 7)} days.</p>
        </div>
        """
        return subject, html

    if template == USER_SETUP_TEMPLATE:
        type_name = PROFILE_TYPE_NAMES.get(data["profile_type"], data["profile_type"])
        url = f"{settings.frontend_base_url}/setup-profile?token={data['token']}"
        subject = f"Welcome to {settings.email_from_name} - Complete Your {type_name} Profile"
        html = f"""
        <div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">
            <h2>Welcome to {org}</h2>
            <p>Hi {first_name},</p>
            <p>A {escape(type_name)} profile has been created for you. Set your password and contact preferences to get started:</p>
            <p><a href="{escape(url)}" style="display: inline-block; padding: 15px 30px; background: #f59e0b; color: #fff; text-decoration: none; border-radius: 5px;">Complete Your Profile</a></p>
            <p style="color: #666; font-size: 0.875rem;">This link expires in {data.get('expiry_days', 7)} days.</p>
        </div>
        """
        return subject, html

    if template == PASSWORD_RESET_TEMPLATE:
        url = f"{settings.frontend_base_url}/reset-password?token={data['token']}"
        subject = f"Reset Your Password - {settings.email_from_name}"
        html = f"""
        <div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">
            <h2>Password Reset</h2>
            <p>Hi {first_name},</p>
            <p>An administrator requested a password reset for your account.</p>
            <p><a href="{escape(url)}" style="display: inline-block; padding: 12px 24px; background: #000; color: #fff; text-decoration: none; border-radius: 4px;">Choose a New Password</a></p>
            <p style="color: #666; font-size: 0.875rem;">This link expires in {data.get('expiry_minutes', 60)} minutes.</p>
        </div>
        """
        return subject, html

    raise ValueError(f"Unknown email template: {template}")


class SendGridNotifier(Notifier):
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._client = None

    def init(self) -> None:
        from sendgrid import SendGridAPIClient

        self._client = SendGridAPIClient(self.settings.sendgrid_api_key)
        logger.info("SendGrid notifier ready", extra={"from_email": self.settings.email_from_address})

    def close(self) -> None:
        self._client = None

    def send(self, to: str, template: str, data: dict[str, Any]) -> bool:
        from sendgrid.helpers.mail import Mail

        subject, html_content = render(template, data, self.settings)

        if self._client is None:
            self.init()

        try:
            message = Mail(
                from_email=(self.settings.email_from_address, self.settings.email_from_name),
                to_emails=to,
                subject=subject,
                html_content=html_content,
            )
            response = self._client.send(message)
            logger.info(f"Email sent: to={to} template={template} status={response.status_code}")
            return response.status_code in (200, 201, 202)
        except Exception as e:
            logger.error(f"Email send failed: to={to} template={template} error={e}")
            return False


class LoggingNotifier(Notifier):
    """Used when no SendGrid key is configured: logs and reports not-sent."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def send(self, to: str, template: str, data: dict[str, Any]) -> bool:
        subject, _ = render(template, data, self.settings)
        logger.info(f"Email not sent (no SENDGRID_API_KEY): to={to} subject={subject}")
        return False


def build_notifier(settings: Optional[Settings] = None) -> Notifier:
    settings = settings or get_settings()
    if settings.sendgrid_api_key:
        return SendGridNotifier(settings)
    return LoggingNotifier(settings)
