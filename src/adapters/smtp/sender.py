"""SMTP notifier adapter - Implements Notifier protocol over smtplib."""

import logging
import smtplib
from collections.abc import Mapping
from email.mime.text import MIMEText

from src.adapters.smtp.templates import render
from src.domain.ports import NoticeTemplate

logger = logging.getLogger(__name__)


class SmtpNotifier:
    """
    Implements Notifier protocol by sending plain-text email.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        host: str,
        port: int,
        from_address: str,
        username: str = "",
        password: str = "",
    ) -> None:
        self.host = host
        self.port = port
        self.from_address = from_address
        self.username = username
        self.password = password

    def _create_message(self, recipient: str, subject: str, body: str) -> MIMEText:
        msg = MIMEText(body, "plain", "utf-8")
        msg["Subject"] = subject
        msg["From"] = self.from_address
        msg["To"] = recipient
        return msg

    def _send(self, msg: MIMEText) -> None:
        with smtplib.SMTP(self.host, self.port) as server:
            if self.username and self.password:
                server.starttls()
                server.login(self.username, self.password)
            server.send_message(msg)

    def send(self, template: NoticeTemplate, recipient: str, data: Mapping[str, object]) -> None:
        subject, body = render(template, data)
        self._send(self._create_message(recipient, subject, body))
        logger.info("Sent %s notice to %s", NoticeTemplate(template).value, recipient)
