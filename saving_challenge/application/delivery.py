"""
Delivery sinks — hand emitted notifications to a presentation channel.

Sinks are fire-and-forget: the policy engine logs and ignores anything they raise.
"""
import logging

import requests

from saving_challenge.config import Settings, get_settings
from saving_challenge.domain.notification import NotificationRecord

logger = logging.getLogger(__name__)


class LoggingDeliverySink:
    """Writes every notification to the log (in-app toast stand-in)."""

    def deliver(self, notification: NotificationRecord) -> None:
        logger.info("NOTIFY [%s] %s %s — %s", notification.type.value, notification.icon,
                    notification.title, notification.body)


class TelegramDeliverySink:
    """Send notifications through the Telegram Bot API."""

    def __init__(self, settings: Settings | None = None, session: requests.Session | None = None):
        self.settings = settings or get_settings()
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.settings.TELEGRAM_BOT_TOKEN and self.settings.TELEGRAM_CHAT_ID)

    def deliver(self, notification: NotificationRecord) -> None:
        if not self.configured:
            logger.debug("Telegram not configured, skipping delivery")
            return
        resp = self.session.post(
            f"https://api.telegram.org/bot{self.settings.TELEGRAM_BOT_TOKEN}/sendMessage",
            json={
                "chat_id": self.settings.TELEGRAM_CHAT_ID,
                "text": f"{notification.icon} <b>{notification.title}</b>\n{notification.body}",
                "parse_mode": "HTML",
            },
            timeout=self.settings.HTTP_TIMEOUT_SEC,
        )
        resp.raise_for_status()


class FanOutDeliverySink:
    """Deliver to several sinks; one failing sink does not stop the others."""

    def __init__(self, *sinks):
        self.sinks = list(sinks)

    def deliver(self, notification: NotificationRecord) -> None:
        for sink in self.sinks:
            try:
                sink.deliver(notification)
            except Exception:
                logger.exception("Delivery via %s failed", type(sink).__name__)
