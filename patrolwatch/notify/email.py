"""SMTP email channel."""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from ..core.settings import SmtpSettings

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 15


class EmailChannel:
    """Send plain-text mail through SMTP (SSL on 465 or STARTTLS)."""

    name = "email"

    def __init__(self, smtp: SmtpSettings, recipient: str):
        self.smtp = smtp
        self.recipient = recipient

    async def send(self, subject: str, message: str) -> bool:
        if not self.smtp.configured or not self.recipient:
            logger.warning("Email not sent - SMTP not configured. Would send to: %s", self.recipient)
            return False
        # smtplib blocks; keep it off the event loop.
        return await asyncio.to_thread(self._send_sync, subject, message)

    def build_message(self, subject: str, message: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = f"Patrol: {subject}"
        msg["From"] = self.smtp.sender or self.smtp.username
        msg["To"] = self.recipient
        msg.attach(MIMEText(message, "plain", "utf-8"))
        return msg

    def _send_sync(self, subject: str, message: str) -> bool:
        msg = self.build_message(subject, message)
        try:
            if self.smtp.use_ssl:
                server = smtplib.SMTP_SSL(self.smtp.host, self.smtp.port, timeout=SMTP_TIMEOUT_SECONDS)
            else:
                server = smtplib.SMTP(self.smtp.host, self.smtp.port, timeout=SMTP_TIMEOUT_SECONDS)
            with server:
                if not self.smtp.use_ssl:
                    server.starttls()
                server.login(self.smtp.username, self.smtp.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("Error sending email to %s: %s", self.recipient, exc)
            return False

        logger.info("Email sent successfully to %s", self.recipient)
        return True
