"""
Email Service - SMTP delivery of password reset links.

Configured through SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASSWORD and
FROM_EMAIL. Without an SMTP host the reset link is written to the log instead
(development only).
"""

import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Mapping

logger = logging.getLogger(__name__)

SUBJECTS = {
    'EN': "Password Reset Request - MarklerApp CRM",
    'DE': "Passwort zurücksetzen - MarklerApp CRM",
}

BODY_EN = """Hello {name},

You requested a password reset for your MarklerApp CRM account.

To reset your password, please click the link below:

{link}

This link will expire in {minutes} minutes for security reasons.

If you did not request this password reset, please ignore this email.
Your password will remain unchanged.

For security reasons, never share this link with anyone.

Best regards,
MarklerApp CRM Team
"""

BODY_DE = """Hallo {name},

Sie haben das Zurücksetzen Ihres Passworts für Ihr MarklerApp CRM-Konto angefordert.

Um Ihr Passwort zurückzusetzen, klicken Sie bitte auf den folgenden Link:

{link}

Dieser Link läuft aus Sicherheitsgründen in {minutes} Minuten ab.

Falls Sie diese Passwort-Zurücksetzung nicht angefordert haben, ignorieren Sie bitte diese E-Mail.
Ihr Passwort bleibt unverändert.

Aus Sicherheitsgründen sollten Sie diesen Link niemals mit anderen teilen.

Mit freundlichen Grüßen,
Ihr MarklerApp CRM-Team
"""


class EmailService:
    """Sends transactional email over SMTP with STARTTLS."""

    def __init__(self, config: Mapping):
        self.smtp_host = config.get('SMTP_HOST', '')
        self.smtp_port = int(config.get('SMTP_PORT', 587))
        self.smtp_user = config.get('SMTP_USER', '')
        self.smtp_password = config.get('SMTP_PASSWORD', '')
        self.from_email = config.get('FROM_EMAIL', 'noreply@marklerapp.com')
        self.frontend_url = config.get('FRONTEND_URL', 'http://localhost:4200').rstrip('/')
        self.expiry_minutes = int(config.get('PASSWORD_RESET_EXPIRY_MINUTES', 15))
        self.email_enabled = bool(self.smtp_host)

    def build_reset_link(self, raw_token: str) -> str:
        return f"{self.frontend_url}/auth/reset-password?token={raw_token}"

    def send_password_reset_email(self, to: str, raw_token: str, language: str = 'DE',
                                  first_name: str = None) -> bool:
        """
        Send the reset link in the agent's language.

        Returns:
            True if the mail was handed to the SMTP server, False if SMTP is
            not configured

        Raises:
            smtplib.SMTPException, OSError: on delivery failure
        """
        link = self.build_reset_link(raw_token)
        language = (language or 'DE').upper()

        if not self.email_enabled:
            logger.info(f"SMTP not configured; password reset link for {to}: {link}")
            return False

        template = BODY_EN if language == 'EN' else BODY_DE
        body = template.format(name=first_name or to, link=link, minutes=self.expiry_minutes)

        msg = MIMEMultipart('alternative')
        msg['Subject'] = SUBJECTS.get(language, SUBJECTS['DE'])
        msg['From'] = self.from_email
        msg['To'] = to
        msg.attach(MIMEText(body, 'plain', 'utf-8'))

        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
            server.starttls()
            if self.smtp_user:
                server.login(self.smtp_user, self.smtp_password)
            server.send_message(msg)

        logger.info(f"Sent password reset email to {to}")
        return True
