"""
Email service for sending emails via SMTP.
"""
import aiosmtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from pathlib import Path
from typing import Any, Dict, Optional
from jinja2 import Environment, FileSystemLoader
from core.config import settings
from core.logging import get_logger

logger = get_logger("email_service")


class EmailService:
    """Render jinja2 templates from ``templates/emails`` and send them over SMTP."""

    def __init__(self):
        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_username = settings.smtp_username
        self.smtp_password = settings.smtp_password
        self.sender_email = settings.email_from
        self.templates_dir = Path(__file__).parent.parent / "templates" / "emails"
        self.jinja_env = Environment(
            loader=FileSystemLoader(self.templates_dir),
            autoescape=True
        )

    @property
    def enabled(self) -> bool:
        return bool(self.smtp_host)

    def render(self, template_name: str, context: Dict[str, Any]) -> tuple[str, str]:
        """Return (html, text) bodies for ``<template_name>.html`` and ``.txt``."""
        html_content = self.jinja_env.get_template(f"{template_name}.html").render(**context)
        text_content = self.jinja_env.get_template(f"{template_name}.txt").render(**context)
        return html_content, text_content

    async def send_email(
        self,
        to_email: str,
        subject: str,
        template_name: str,
        context: Dict[str, Any],
        reply_to: Optional[str] = None,
    ) -> bool:
        """
        Send an email using a template.

        Returns:
            bool: True if the email was handed to the SMTP server, False when
            SMTP is not configured or sending failed
        """
        html_content, text_content = self.render(template_name, context)

        if not self.enabled:
            logger.info("SMTP not configured, email not sent", to_email=to_email, subject=subject, body=text_content)
            return False

        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = self.sender_email
        message["To"] = to_email
        if reply_to:
            message["Reply-To"] = reply_to
        message.attach(MIMEText(text_content, "plain", "utf-8"))
        message.attach(MIMEText(html_content, "html", "utf-8"))

        try:
            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_username,
                password=self.smtp_password,
                start_tls=settings.smtp_use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email", error=str(e), to_email=to_email, subject=subject)
            return False

        logger.info("Email sent successfully", to_email=to_email, subject=subject, template=template_name)
        return True

    async def send_subscription_interest(
        self, email: Optional[str], name: Optional[str], message: str
    ) -> bool:
        context = {
            "app_name": "EduKeeper",
            "email": email or "non renseigné",
            "name": name or "non renseigné",
            "message": message,
        }
        return await self.send_email(
            to_email=settings.interest_notification_email,
            subject="Nouvel intérêt pour l'abonnement EduKeeper",
            template_name="subscription_interest",
            context=context,
            reply_to=email,
        )
