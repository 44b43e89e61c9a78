"""
Storage contract consumed by the engagement engine.

Every operation is a coroutine. Lookups of absent rows return None,
I/O failures raise StorageError.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Protocol

from saving_challenge.domain.notification import NotificationRecord
from saving_challenge.domain.saving import Challenge, SavingEvent, UserProfile


class Storage(Protocol):
    async def create_user(self, username: str = "") -> UserProfile: ...

    async def ensure_user(self, user_id: int, username: str = "") -> UserProfile: ...

    async def get_user(self, user_id: int) -> UserProfile | None: ...

    async def update_user(self, user_id: int, changes: dict[str, Any]) -> None: ...

    async def create_challenge(self, user_id: int, name: str, target_amount: Decimal) -> Challenge: ...

    async def get_challenge(self, challenge_id: int) -> Challenge | None: ...

    async def update_challenge(self, challenge_id: int, changes: dict[str, Any]) -> None: ...

    async def get_active_challenges(self, user_id: int) -> list[Challenge]: ...

    async def add_saving(
        self,
        user_id: int,
        amount: Decimal,
        occurred_on: date,
        category: str = "general",
        note: str | None = None,
        challenge_id: int | None = None,
        created_at: datetime | None = None,
    ) -> SavingEvent: ...

    async def get_saving_events(self, user_id: int) -> list[SavingEvent]: ...

    async def add_notification_record(self, record: NotificationRecord) -> NotificationRecord: ...

    async def get_notification_records(self, user_id: int, unread_only: bool = False) -> list[NotificationRecord]: ...

    async def get_setting(self, key: str, default: Any = None) -> Any: ...

    async def save_setting(self, key: str, value: Any) -> None: ...


class DeliverySink(Protocol):
    """Presentation / OS notification channel. Fire-and-forget."""

    def deliver(self, notification: NotificationRecord) -> None: ...
