"""
Tests for delivery sinks
"""
from unittest.mock import MagicMock

import pytest
import requests

from saving_challenge.application.delivery import (
    FanOutDeliverySink,
    LoggingDeliverySink,
    TelegramDeliverySink,
)
from saving_challenge.config import Settings
from saving_challenge.domain.notification import NotificationRecord, NotificationType


def _record():
    return NotificationRecord(user_id=1, type=NotificationType.STREAK, title="🔥 7 days in a row!",
                              body="Keep it up", icon="🔥", color="#EF4444", id=10)


class TestTelegramDeliverySink:
    def test_not_configured_skips(self):
        session = MagicMock()
        sink = TelegramDeliverySink(Settings(_env_file=None), session=session)
        assert sink.configured is False
        sink.deliver(_record())
        session.post.assert_not_called()

    def test_posts_send_message(self):
        session = MagicMock()
        settings = Settings(TELEGRAM_BOT_TOKEN="123:abc", TELEGRAM_CHAT_ID="42", HTTP_TIMEOUT_SEC=3, _env_file=None)
        sink = TelegramDeliverySink(settings, session=session)

        sink.deliver(_record())

        session.post.assert_called_once()
        args, kwargs = session.post.call_args
        assert args[0] == "https://api.telegram.org/bot123:abc/sendMessage"
        assert kwargs["json"]["chat_id"] == "42"
        assert kwargs["json"]["parse_mode"] == "HTML"
        assert "<b>🔥 7 days in a row!</b>" in kwargs["json"]["text"]
        assert kwargs["timeout"] == 3
        session.post.return_value.raise_for_status.assert_called_once()

    def test_http_error_propagates(self):
        session = MagicMock()
        session.post.return_value.raise_for_status.side_effect = requests.HTTPError("401")
        settings = Settings(TELEGRAM_BOT_TOKEN="t", TELEGRAM_CHAT_ID="1", _env_file=None)
        with pytest.raises(requests.HTTPError):
            TelegramDeliverySink(settings, session=session).deliver(_record())


def test_logging_sink_writes_log(caplog):
    caplog.set_level("INFO")
    LoggingDeliverySink().deliver(_record())
    assert "NOTIFY [streak]" in caplog.text


def test_fan_out_continues_after_failure(caplog):
    broken = MagicMock()
    broken.deliver.side_effect = requests.ConnectionError("offline")
    healthy = MagicMock()

    FanOutDeliverySink(broken, healthy).deliver(_record())

    healthy.deliver.assert_called_once()
    assert "failed" in caplog.text
