# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Email Service

Sends HTML mail over SMTP (implicit TLS). The blocking smtplib client runs
in a worker thread.
"""

import asyncio
import smtplib
from email.message import EmailMessage

from dotportion.core.config import Config
from dotportion.core.errors import ServiceUnavailableError
from dotportion.core.logging import get_service_logger

logger = get_service_logger("email")


class EmailService:
    """SMTP sender configured from Config and SMTP_* secrets."""

    def __init__(self, config: Config):
        self.host = config.smtp_host
        self.port = config.smtp_port
        self.sender = config.smtp_sender
        self.timeout = config.http_timeout
        self.username, self.password = config.get_smtp_credentials()

    def _build_message(self, to: str, subject: str, html: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = f"DotPortion <{self.sender}>"
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML-capable mail client.")
        message.add_alternative(html, subtype="html")
        return message

    def _send_sync(self, message: EmailMessage) -> None:
        with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as client:
            if self.username:
                client.login(self.username, self.password)
            client.send_message(message)

    async def send(self, to: str, subject: str, html: str) -> None:
        """
        Send one email.

        Raises:
            ServiceUnavailableError: If the SMTP exchange fails
        """
        logger.info(f"Attempting to send mail to {to}")
        try:
            await asyncio.to_thread(self._send_sync, self._build_message(to, subject, html))
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP transport failed: {e}")
            raise ServiceUnavailableError(f"Email delivery failed: {e}", service="smtp")
        logger.info(f"Email sent successfully to {to}")
