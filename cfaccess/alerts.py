from __future__ import annotations

import logging
from typing import Protocol

import apprise

logger = logging.getLogger(__name__)


class NotificationFailure(Exception):
    pass


class Transport(Protocol):
    """Delivers a plain message to a URL-addressed channel."""

    def send(self, url: str, message: str) -> None:
        ...


class AppriseTransport:
    """Transport backed by Apprise service URLs (discord://, tgram://, mailto://, ...)."""

    def send(self, url: str, message: str) -> None:
        apobj = apprise.Apprise()
        if not apobj.add(url):
            raise NotificationFailure("unsupported or malformed notification URL")
        if not apobj.notify(body=message):
            raise NotificationFailure("notification service rejected the message")


class Notifier:
    def __init__(self, url: str | None, identifier: str | None = None, transport: Transport | None = None):
        self.url = url
        self.identifier = identifier
        self.transport = transport if transport is not None else AppriseTransport()

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def format(self, message: str) -> str:
        if self.identifier:
            return f"{self.identifier}: {message}"
        return message

    def notify(self, message: str) -> None:
        """Send a message; raises NotificationFailure when delivery fails.

        A notifier without a URL is a no-op.
        """
        if not self.url:
            logger.debug("Notification URL not configured, skipping notification")
            return

        logger.info("Sending notification: %s", message)
        try:
            self.transport.send(self.url, self.format(message))
        except NotificationFailure:
            raise
        except Exception as e:
            raise NotificationFailure(f"failed to send notification: {type(e).__name__}: {e}") from e
        logger.info("Notification sent successfully")

    def notify_safely(self, message: str) -> bool:
        try:
            self.notify(message)
        except NotificationFailure as e:
            logger.error("Notification failed: %s", e)
            return False
        return True
