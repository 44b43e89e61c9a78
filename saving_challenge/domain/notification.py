"""Notification types, records and send outcomes"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class NotificationType(str, Enum):
    DAILY_REMINDER = "daily_reminder"
    MILESTONE = "milestone"
    STREAK = "streak"
    ACHIEVEMENT = "achievement"
    TIP = "tip"
    MOTIVATION = "motivation"
    CHALLENGE_UPDATE = "challenge_update"
    SYSTEM = "system"

    @classmethod
    def parse(cls, value) -> "NotificationType | None":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


# Types that skip the per-type preference flags
ALWAYS_ALLOWED = frozenset({
    NotificationType.ACHIEVEMENT,
    NotificationType.MOTIVATION,
    NotificationType.SYSTEM,
})


class SuppressReason(str, Enum):
    QUIET_HOURS = "quiet_hours"
    COOLDOWN = "cooldown"
    PREFERENCE_DISABLED = "preference_disabled"
    UNKNOWN_TYPE = "unknown_type"


@dataclass
class NotificationRecord:
    user_id: int
    type: NotificationType
    title: str
    body: str
    icon: str = ""
    color: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    is_read: bool = False
    created_at: datetime | None = None
    id: int | None = None


@dataclass(frozen=True)
class Sent:
    record: NotificationRecord
    sent: bool = True


@dataclass(frozen=True)
class Suppressed:
    reason: SuppressReason
    sent: bool = False


SendResult = Sent | Suppressed
