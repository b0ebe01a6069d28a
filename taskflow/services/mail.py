"""Outbound mail for password reset links."""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from taskflow.config import get_settings

logger = logging.getLogger("taskflow")

RESET_SUBJECT = "Action Required: Reset Your Password"

RESET_TEMPLATE = """\
<html>
  <body style="font-family: Helvetica, Arial, sans-serif; color: #1a1a1a;">
    <h2>Password Reset Request</h2>
    <p>We received a request to reset the password for your account. No changes have been made yet.</p>
    <p>Use the link below to choose a new password. <strong>This link expires in {minutes} minutes.</strong></p>
    <p><a href="{url}">Reset My Password</a></p>
    <p style="font-size: 13px; color: #6b7280;">If you did not request a password reset, ignore this email.</p>
  </body>
</html>
"""


class MailService:
    """Delivers reset links by SMTP, or logs them when no SMTP host is configured."""

    def build_reset_url(self, token: str) -> str:
        settings = get_settings()
        return f"{settings.CLIENT_URL.rstrip('/')}/reset-password/{token}"

    def send_password_reset(self, to_email: str, token: str) -> None:
        """Send the reset link. Raises smtplib.SMTPException / OSError on delivery failure."""
        settings = get_settings()
        url = self.build_reset_url(token)

        if not settings.SMTP_HOST:
            logger.info("PASSWORD RESET: %s", url)
            return

        msg = MIMEMultipart("alternative")
        msg["Subject"] = RESET_SUBJECT
        msg["From"] = settings.EMAIL_FROM
        msg["To"] = to_email
        msg.attach(MIMEText(RESET_TEMPLATE.format(url=url, minutes=settings.RESET_TOKEN_EXPIRE_MINUTES), "html"))

        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
            if settings.SMTP_USE_TLS:
                server.starttls()
            if settings.EMAIL_USER and settings.EMAIL_PASS:
                server.login(settings.EMAIL_USER, settings.EMAIL_PASS)
            server.send_message(msg)
        logger.info("Password reset email sent to user")


_mail_service: MailService | None = None


def get_mail_service() -> MailService:
    """Get singleton mail service instance."""
    global _mail_service
    if _mail_service is None:
        _mail_service = MailService()
    return _mail_service
