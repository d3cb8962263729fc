"""
Console notifier adapter - Implements Notifier protocol.

This module provides a console-based implementation of the domain's
notifier port, logging rendered notices to stdout for demo purposes.
"""

import logging
from collections.abc import Mapping

from src.adapters.smtp.templates import render
from src.domain.ports import NoticeTemplate

logger = logging.getLogger(__name__)


class ConsoleNotifier:
    """
    Implements Notifier protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints notices to stdout.
    """

    def send(self, template: NoticeTemplate, recipient: str, data: Mapping[str, object]) -> None:
        """
        Log a rendered notice (simulates email delivery).

        The notice is logged at INFO level to be visible in docker-compose logs.

        Args:
            template: Notice template to render
            recipient: Recipient email address
            data: Template values
        """
        subject, body = render(template, data)
        logger.info(
            "[NOTICE] Template: %s To: %s Subject: %s\n%s",
            NoticeTemplate(template).value,
            recipient,
            subject,
            body,
        )
