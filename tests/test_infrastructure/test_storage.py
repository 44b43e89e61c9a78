"""
Tests for SqlAlchemyStorage and settings
"""
import asyncio
from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from saving_challenge.config import Settings
from saving_challenge.domain.errors import NotFoundError, StorageError
from saving_challenge.domain.notification import NotificationRecord, NotificationType
from saving_challenge.domain.saving import CHALLENGE_COMPLETED
from saving_challenge.infrastructure.db.storage import SqlAlchemyStorage


class TestUsersAndChallenges:
    def test_absent_rows_are_none(self, storage):
        assert asyncio.run(storage.get_user(404)) is None
        assert asyncio.run(storage.get_challenge(404)) is None

    def test_ensure_user_creates_once_with_given_id(self, storage):
        created = asyncio.run(storage.ensure_user(1, "local"))
        asyncio.run(storage.update_user(1, {"current_streak": 2}))
        again = asyncio.run(storage.ensure_user(1, "other"))

        assert created.id == 1
        assert again.username == "local"
        assert again.current_streak == 2

    def test_update_missing_user_raises(self, storage):
        with pytest.raises(NotFoundError):
            asyncio.run(storage.update_user(404, {"current_streak": 1}))

    def test_update_missing_challenge_raises(self, storage):
        with pytest.raises(NotFoundError):
            asyncio.run(storage.update_challenge(404, {"status": CHALLENGE_COMPLETED}))

    def test_update_ignores_unknown_fields(self, storage, user):
        asyncio.run(storage.update_user(user.id, {"current_streak": 4, "id": 77}))
        profile = asyncio.run(storage.get_user(user.id))
        assert profile.id == user.id
        assert profile.current_streak == 4

    def test_active_challenges_exclude_completed(self, storage, user):
        a = asyncio.run(storage.create_challenge(user.id, "A", Decimal("100")))
        b = asyncio.run(storage.create_challenge(user.id, "B", Decimal("100")))
        asyncio.run(storage.update_challenge(a.id, {"status": CHALLENGE_COMPLETED}))
        assert [c.id for c in asyncio.run(storage.get_active_challenges(user.id))] == [b.id]


class TestSavings:
    def test_add_saving_bumps_totals(self, storage, user):
        ch = asyncio.run(storage.create_challenge(user.id, "Trip", Decimal("500")))
        asyncio.run(storage.add_saving(user.id, Decimal("20.50"), date(2026, 3, 1), challenge_id=ch.id))
        asyncio.run(storage.add_saving(user.id, Decimal("10"), date(2026, 3, 2), category="food", note="no coffee"))

        assert asyncio.run(storage.get_user(user.id)).total_savings == Decimal("30.50")
        assert asyncio.run(storage.get_challenge(ch.id)).current_amount == Decimal("20.50")

        events = asyncio.run(storage.get_saving_events(user.id))
        assert len(events) == 2
        food = next(e for e in events if e.category == "food")
        assert food.note == "no coffee"
        assert food.challenge_id is None

    def test_add_saving_unknown_user(self, storage):
        with pytest.raises(NotFoundError):
            asyncio.run(storage.add_saving(404, Decimal("1"), date(2026, 3, 1)))


class TestNotificationsAndSettings:
    def test_records_newest_first_and_unread_filter(self, storage, user):
        for minute, title in ((0, "old"), (5, "new")):
            asyncio.run(storage.add_notification_record(NotificationRecord(
                user_id=user.id, type=NotificationType.TIP, title=title, body="b",
                created_at=datetime(2026, 3, 2, 12, minute, tzinfo=timezone.utc),
            )))
        records = asyncio.run(storage.get_notification_records(user.id))
        assert [r.title for r in records] == ["new", "old"]
        assert len(asyncio.run(storage.get_notification_records(user.id, unread_only=True))) == 2

    def test_setting_default_and_round_trip(self, storage):
        assert asyncio.run(storage.get_setting("missing")) is None
        assert asyncio.run(storage.get_setting("missing", {"x": 1})) == {"x": 1}

        asyncio.run(storage.save_setting("prefs", {"quiet_hours": {"enabled": True}}))
        asyncio.run(storage.save_setting("prefs", {"quiet_hours": {"enabled": False}}))
        assert asyncio.run(storage.get_setting("prefs")) == {"quiet_hours": {"enabled": False}}

    def test_driver_error_becomes_storage_error(self, caplog):
        factory = MagicMock(side_effect=OperationalError("SELECT 1", {}, Exception("database is locked")))
        storage = SqlAlchemyStorage(factory)

        with pytest.raises(StorageError, match="get_setting failed"):
            asyncio.run(storage.get_setting("x"))
        assert "Storage get_setting failed" in caplog.text


class TestSettings:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.NOTIFICATION_COOLDOWN_MINUTES == 30
        assert s.DAILY_REMINDER_HOUR == 20
        assert s.FIRST_WEEKDAY == 6
        assert str(s.tz) == s.TIMEZONE

    def test_postgres_url_uses_psycopg(self):
        s = Settings(DATABASE_URL="postgresql://u:p@localhost/db", _env_file=None)
        assert s.get_sqlalchemy_url() == "postgresql+psycopg://u:p@localhost/db"

    def test_sqlite_url_unchanged(self):
        s = Settings(DATABASE_URL="sqlite:///x.db", _env_file=None)
        assert s.get_sqlalchemy_url() == "sqlite:///x.db"
