"""
SQLAlchemy implementation of the storage contract.

Each call opens its own session from the factory and commits before
returning. Driver errors are logged and re-raised as StorageError.
"""
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from saving_challenge.domain.errors import NotFoundError, StorageError
from saving_challenge.domain.notification import NotificationRecord, NotificationType
from saving_challenge.domain.saving import CHALLENGE_ACTIVE, Challenge, SavingEvent, UserProfile
from saving_challenge.infrastructure.db.models import (
    UserModel,
    ChallengeModel,
    SavingModel,
    NotificationModel,
    SettingModel,
)

logger = logging.getLogger(__name__)

_USER_FIELDS = ("username", "total_savings", "current_streak", "longest_streak")
_CHALLENGE_FIELDS = ("name", "target_amount", "current_amount", "status")


def _to_user(m: UserModel) -> UserProfile:
    return UserProfile(
        id=m.id,
        username=m.username,
        total_savings=Decimal(m.total_savings or 0),
        current_streak=m.current_streak or 0,
        longest_streak=m.longest_streak or 0,
    )


def _to_challenge(m: ChallengeModel) -> Challenge:
    return Challenge(
        id=m.id,
        user_id=m.user_id,
        name=m.name,
        target_amount=Decimal(m.target_amount),
        current_amount=Decimal(m.current_amount or 0),
        status=m.status,
        created_at=m.created_at,
    )


def _to_saving(m: SavingModel) -> SavingEvent:
    return SavingEvent(
        id=m.id,
        user_id=m.user_id,
        challenge_id=m.challenge_id,
        amount=Decimal(m.amount),
        category=m.category,
        note=m.note,
        occurred_on=m.occurred_on,
        created_at=m.created_at,
    )


def _to_record(m: NotificationModel) -> NotificationRecord:
    return NotificationRecord(
        id=m.id,
        user_id=m.user_id,
        type=NotificationType.parse(m.type) or m.type,
        title=m.title,
        body=m.body,
        icon=m.icon,
        color=m.color,
        data=dict(m.data_json or {}),
        is_read=m.is_read,
        created_at=m.created_at,
    )


class SqlAlchemyStorage:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _fail(self, action: str, exc: Exception) -> StorageError:
        logger.error("Storage %s failed: %s", action, exc)
        return StorageError(f"{action} failed: {exc}")

    # --- users ---

    async def create_user(self, username: str = "") -> UserProfile:
        try:
            with self._session_factory() as db:
                user = UserModel(username=username, total_savings=Decimal("0"), current_streak=0, longest_streak=0)
                db.add(user)
                db.commit()
                return _to_user(user)
        except SQLAlchemyError as exc:
            raise self._fail("create_user", exc) from exc

    async def ensure_user(self, user_id: int, username: str = "") -> UserProfile:
        """Return the user, creating the row with this exact id on a fresh database."""
        try:
            with self._session_factory() as db:
                user = db.get(UserModel, user_id)
                if user is None:
                    user = UserModel(id=user_id, username=username, total_savings=Decimal("0"),
                                     current_streak=0, longest_streak=0)
                    db.add(user)
                    db.commit()
                    logger.info("Created local user id=%s", user_id)
                return _to_user(user)
        except SQLAlchemyError as exc:
            raise self._fail("ensure_user", exc) from exc

    async def get_user(self, user_id: int) -> UserProfile | None:
        try:
            with self._session_factory() as db:
                user = db.get(UserModel, user_id)
                return _to_user(user) if user else None
        except SQLAlchemyError as exc:
            raise self._fail("get_user", exc) from exc

    async def update_user(self, user_id: int, changes: dict[str, Any]) -> None:
        try:
            with self._session_factory() as db:
                user = db.get(UserModel, user_id)
                if user is None:
                    raise NotFoundError("user", user_id)
                for key in _USER_FIELDS:
                    if key in changes:
                        setattr(user, key, changes[key])
                db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("update_user", exc) from exc

    # --- challenges ---

    async def create_challenge(self, user_id: int, name: str, target_amount: Decimal) -> Challenge:
        try:
            with self._session_factory() as db:
                ch = ChallengeModel(
                    user_id=user_id,
                    name=name,
                    target_amount=Decimal(target_amount),
                    current_amount=Decimal("0"),
                    status=CHALLENGE_ACTIVE,
                )
                db.add(ch)
                db.commit()
                return _to_challenge(ch)
        except SQLAlchemyError as exc:
            raise self._fail("create_challenge", exc) from exc

    async def get_challenge(self, challenge_id: int) -> Challenge | None:
        try:
            with self._session_factory() as db:
                ch = db.get(ChallengeModel, challenge_id)
                return _to_challenge(ch) if ch else None
        except SQLAlchemyError as exc:
            raise self._fail("get_challenge", exc) from exc

    async def update_challenge(self, challenge_id: int, changes: dict[str, Any]) -> None:
        try:
            with self._session_factory() as db:
                ch = db.get(ChallengeModel, challenge_id)
                if ch is None:
                    raise NotFoundError("challenge", challenge_id)
                for key in _CHALLENGE_FIELDS:
                    if key in changes:
                        setattr(ch, key, changes[key])
                db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("update_challenge", exc) from exc

    async def get_active_challenges(self, user_id: int) -> list[Challenge]:
        try:
            with self._session_factory() as db:
                rows = (
                    db.query(ChallengeModel)
                    .filter(
                        ChallengeModel.user_id == user_id,
                        ChallengeModel.status == CHALLENGE_ACTIVE,
                    )
                    .order_by(ChallengeModel.id)
                    .all()
                )
                return [_to_challenge(r) for r in rows]
        except SQLAlchemyError as exc:
            raise self._fail("get_active_challenges", exc) from exc

    # --- savings ---

    async def add_saving(
        self,
        user_id: int,
        amount: Decimal,
        occurred_on: date,
        category: str = "general",
        note: str | None = None,
        challenge_id: int | None = None,
        created_at: datetime | None = None,
    ) -> SavingEvent:
        """Append a saving and bump the user's and the challenge's running totals in one transaction."""
        try:
            with self._session_factory() as db:
                user = db.get(UserModel, user_id)
                if user is None:
                    raise NotFoundError("user", user_id)
                saving = SavingModel(
                    user_id=user_id,
                    challenge_id=challenge_id,
                    amount=amount,
                    category=category,
                    note=note,
                    occurred_on=occurred_on,
                    created_at=created_at or datetime.now(timezone.utc),
                )
                db.add(saving)
                user.total_savings = Decimal(user.total_savings or 0) + amount
                if challenge_id is not None:
                    ch = db.get(ChallengeModel, challenge_id)
                    if ch is not None:
                        ch.current_amount = Decimal(ch.current_amount or 0) + amount
                db.commit()
                return _to_saving(saving)
        except SQLAlchemyError as exc:
            raise self._fail("add_saving", exc) from exc

    async def get_saving_events(self, user_id: int) -> list[SavingEvent]:
        try:
            with self._session_factory() as db:
                rows = db.query(SavingModel).filter(SavingModel.user_id == user_id).all()
                return [_to_saving(r) for r in rows]
        except SQLAlchemyError as exc:
            raise self._fail("get_saving_events", exc) from exc

    # --- notifications ---

    async def add_notification_record(self, record: NotificationRecord) -> NotificationRecord:
        try:
            with self._session_factory() as db:
                notif = NotificationModel(
                    user_id=record.user_id,
                    type=record.type.value if isinstance(record.type, NotificationType) else str(record.type),
                    title=record.title,
                    body=record.body,
                    icon=record.icon,
                    color=record.color,
                    data_json=record.data,
                    is_read=False,
                    created_at=record.created_at or datetime.now(timezone.utc),
                )
                db.add(notif)
                db.commit()
                return _to_record(notif)
        except SQLAlchemyError as exc:
            raise self._fail("add_notification_record", exc) from exc

    async def get_notification_records(self, user_id: int, unread_only: bool = False) -> list[NotificationRecord]:
        """Newest first."""
        try:
            with self._session_factory() as db:
                q = db.query(NotificationModel).filter(NotificationModel.user_id == user_id)
                if unread_only:
                    q = q.filter(NotificationModel.is_read.is_(False))
                rows = q.order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc()).all()
                return [_to_record(r) for r in rows]
        except SQLAlchemyError as exc:
            raise self._fail("get_notification_records", exc) from exc

    # --- settings ---

    async def get_setting(self, key: str, default: Any = None) -> Any:
        try:
            with self._session_factory() as db:
                row = db.get(SettingModel, key)
                if row is None or row.value_json is None:
                    return default
                return row.value_json
        except SQLAlchemyError as exc:
            raise self._fail("get_setting", exc) from exc

    async def save_setting(self, key: str, value: Any) -> None:
        try:
            with self._session_factory() as db:
                row = db.get(SettingModel, key)
                if row is None:
                    db.add(SettingModel(key=key, value_json=value))
                else:
                    row.value_json = value
                db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("save_setting", exc) from exc
