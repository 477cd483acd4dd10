"""
Email adapter for the accounts API.

Messages are rendered from Jinja2 templates under ``templates/emails`` and
delivered over SMTP using the credentials from Settings.
"""

from __future__ import annotations

from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
import logging
import os
import smtplib
import ssl

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .config import Settings, get_settings

logger = logging.getLogger("accounts_api.mailer")

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "..", "templates")


class MailDeliveryError(Exception):
    """Raised when the SMTP server refuses or cannot be reached."""


@dataclass(frozen=True)
class Envelope:
    to_email: str
    subject: str
    to_name: str = ""
    sender: str = ""


class Mailer:
    """Renders ``emails/<template>.html`` and sends it over SMTP."""

    def __init__(self, settings: Settings | None = None, templates_dir: str | None = None) -> None:
        self.settings = settings or get_settings()
        self.env = Environment(
            loader=FileSystemLoader(templates_dir or TEMPLATES_DIR),
            autoescape=select_autoescape(["html"]),
        )

    def render(self, template: str, context: dict) -> str:
        return self.env.get_template(f"emails/{template}.html").render(**context)

    def configured(self) -> bool:
        s = self.settings
        return bool(s.smtp_host and s.smtp_user and s.smtp_password and s.smtp_port and (s.mail_sender or s.smtp_user))

    def send(self, template: str, context: dict, envelope: Envelope) -> bool:
        """
        Render and deliver a message. Returns False without sending when SMTP
        is not configured; raises MailDeliveryError when delivery fails.
        """
        if not self.configured():
            logger.warning("SMTP not configured; skipping %s mail to %s", template, envelope.to_email)
            return False
        html_body = self.render(template, context)
        sender = envelope.sender or self.settings.mail_sender or self.settings.smtp_user
        msg = MIMEMultipart("alternative")
        msg["Subject"] = envelope.subject
        msg["From"] = sender
        msg["To"] = formataddr((envelope.to_name, envelope.to_email)) if envelope.to_name else envelope.to_email
        msg.attach(MIMEText(html_body, "html", "utf-8"))
        try:
            self._deliver(sender, envelope.to_email, msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            raise MailDeliveryError(f"Failed to send {template} mail to {envelope.to_email}: {exc}") from exc
        return True

    def _deliver(self, sender: str, to_email: str, payload: str) -> None:
        settings = self.settings
        port = settings.smtp_port or 465
        if port == 465:
            context = ssl.create_default_context()
            with smtplib.SMTP_SSL(settings.smtp_host, port, context=context, timeout=30) as server:
                server.login(settings.smtp_user, settings.smtp_password)
                server.sendmail(sender, [to_email], payload)
        else:
            with smtplib.SMTP(settings.smtp_host, port, timeout=30) as server:
                server.ehlo()
                server.starttls(context=ssl.create_default_context())
                server.login(settings.smtp_user, settings.smtp_password)
                server.sendmail(sender, [to_email], payload)
