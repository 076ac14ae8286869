"""
Email Service for NFL Frenzy

Handles the outgoing mail of the application:
- Password reset links
- Account approval notices
- Admin broadcasts

With EMAIL_MODE=console, or when SMTP is not configured, messages are
written to the log instead of being sent.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from flask import current_app

logger = logging.getLogger(__name__)


class EmailService:
    """Handles all email sending functionality"""

    def __init__(self):
        config = current_app.config
        self.mode = (config.get("EMAIL_MODE") or "smtp").lower()
        self.smtp_server = config.get("MAIL_SERVER") or "localhost"
        self.smtp_port = config.get("MAIL_PORT", 587)
        self.smtp_username = config.get("MAIL_USERNAME")
        self.smtp_password = config.get("MAIL_PASSWORD")
        self.from_email = config.get("FROM_EMAIL") or "noreply@nflfrenzy.app"
        self.from_name = config.get("FROM_NAME", "NFL Frenzy")
        self.use_tls = config.get("MAIL_USE_TLS", True)
        self.app_origin = (config.get("APP_ORIGIN") or "").rstrip("/")
        self.reset_hours = config.get("RESET_TOKEN_HOURS", 2)

    @property
    def console_mode(self):
        return self.mode == "console" or not (self.smtp_username and self.smtp_password)

    def _create_message(self, to_email, subject, body_text, body_html=None):
        """Create email message"""
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email

        msg.attach(MIMEText(body_text, "plain"))
        if body_html:
            msg.attach(MIMEText(body_html, "html"))

        return msg

    def _send_email(self, message):
        """Send email message; returns True when it was handed off"""
        if self.console_mode:
            logger.info(
                f"[console email] To: {message['To']} Subject: {message['Subject']}"
            )
            return True

        try:
            with smtplib.SMTP(self.smtp_server, self.smtp_port, timeout=15) as server:
                if self.use_tls:
                    server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                server.sendmail(self.from_email, [message["To"]], message.as_string())

            logger.info(f"Email sent successfully to {message['To']}")
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {message['To']}: {str(e)}")
            return False

    def send_password_reset_email(self, user, reset_token):
        """Send password reset email"""
        reset_url = f"{self.app_origin}/reset-password?token={reset_token}"
        subject = f"Password Reset - {self.from_name}"

        body_text = f"""
        Hi {user.display_name},

        You requested a password reset for your {self.from_name} account.

        Open the link below to choose a new password:
        {reset_url}

        This link will expire in {self.reset_hours} hours.

        If you didn't request this reset, please ignore this email.
        """

        body_html = f"""
        <html>
        <body>
            <h2>Password Reset</h2>
            <p>Hi {user.display_name},</p>
            <p>You requested a password reset for your {self.from_name} account.</p>
            <p><a href="{reset_url}">Reset Password</a></p>
            <p><small>This link will expire in {self.reset_hours} hours.</small></p>
            <p>If you didn't request this reset, please ignore this email.</p>
        </body>
        </html>
        """

        message = self._create_message(user.email, subject, body_text, body_html)
        return self._send_email(message)

    def send_account_approved_email(self, user):
        """Tell a user their account was approved"""
        subject = f"Your {self.from_name} account is approved"

        body_text = f"""
        Hi {user.display_name},

        An admin approved your account. You can now log in and make your picks:
        {self.app_origin}/login
        """

        message = self._create_message(user.email, subject, body_text)
        return self._send_email(message)

    def send_broadcast(self, users, subject, body_text):
        """
        Send the same message to every user.

        A failure for one recipient is logged and does not stop the rest.
        Returns (sent, failed_emails).
        """
        sent = 0
        failed = []
        for user in users:
            message = self._create_message(user.email, subject, body_text)
            if self._send_email(message):
                sent += 1
            else:
                failed.append(user.email)

        logger.info(f"Broadcast '{subject}': {sent} sent, {len(failed)} failed")
        return sent, failed
