"""Notification senders.

Delivery is best-effort from the workflow's point of view: callers catch
``NotificationError`` and log it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import structlog
from django.conf import settings
from django.core.mail import send_mail

logger = structlog.get_logger(__name__)


class NotificationError(Exception):
    pass


class INotificationSender(ABC):
    @abstractmethod
    def send(self, recipient: str, subject: str, body: str) -> None:
        """Deliver a message or raise ``NotificationError``."""


class DjangoEmailSender(INotificationSender):
    """Sends e-mail through the configured Django e-mail backend."""

    def __init__(self, from_email: str | None = None) -> None:
        self._from_email = from_email or settings.DEFAULT_FROM_EMAIL

    def send(self, recipient: str, subject: str, body: str) -> None:
        try:
            send_mail(
                subject,
                body,
                self._from_email,
                [recipient],
                fail_silently=False,
            )
        except OSError as exc:
            raise NotificationError(str(exc)) from exc
        logger.info("notification.sent", subject=subject)
