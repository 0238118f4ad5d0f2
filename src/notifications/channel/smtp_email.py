"""SMTP email adapter — delivers through a mail relay with ``smtplib``.

Configured from SMTP_HOST, SMTP_PORT (587, STARTTLS; 465 uses implicit
TLS), SMTP_USER, SMTP_PASSWORD and EMAIL_FROM.
"""

import os
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid

import structlog

from notifications.channel.email_port import EmailPort, failed_result

logger = structlog.get_logger(__name__)


class SMTPEmailAdapter(EmailPort):
    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        sender: str | None = None,
        timeout: float = 10.0,
    ):
        self.host = host or os.environ.get("SMTP_HOST", "localhost")
        self.port = port or int(os.environ.get("SMTP_PORT", "587"))
        self.username = username or os.environ.get("SMTP_USER")
        self.password = password or os.environ.get("SMTP_PASSWORD")
        self.sender = sender or os.environ.get("EMAIL_FROM") or self.username or "orders@localhost"
        self.timeout = timeout

    def _connect(self) -> smtplib.SMTP:
        if self.port == 465:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        client = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        client.starttls()
        return client

    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> dict:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message["Message-ID"] = make_msgid()
        message.set_content(body)
        if html_body:
            message.add_alternative(html_body, subtype="html")

        try:
            with self._connect() as client:
                if self.username and self.password:
                    client.login(self.username, self.password)
                client.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("email_send_failed", to=to, subject=subject, error=str(exc))
            return failed_result(str(exc))

        return {"message_id": message["Message-ID"], "status": "sent"}
