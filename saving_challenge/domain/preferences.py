"""Notification preferences and the quiet-hours window"""
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from saving_challenge.domain.errors import InvalidPreferenceError
from saving_challenge.domain.notification import NotificationType

PREFERENCES_SETTING_KEY = "notification_preferences"


class QuietHours(BaseModel):
    enabled: bool = False
    start_hour: int = Field(default=22, ge=0, le=23)
    end_hour: int = Field(default=8, ge=0, le=23)

    def contains(self, hour: int) -> bool:
        """Return True if the local hour falls in [start_hour, end_hour)."""
        if not self.enabled:
            return False
        s, e = self.start_hour, self.end_hour
        if s <= e:
            return s <= hour < e
        # Overnight range (e.g. 22:00–08:00)
        return hour >= s or hour < e


class UserPreferences(BaseModel):
    daily_reminders: bool = True
    milestone_alerts: bool = True
    streak_notifications: bool = True
    saving_tips: bool = True
    challenge_updates: bool = True
    quiet_hours: QuietHours = Field(default_factory=QuietHours)

    def allows(self, notification_type: NotificationType) -> bool:
        flag = _PREFERENCE_FLAGS.get(notification_type)
        if flag is None:
            return True
        return getattr(self, flag)

    def merged(self, changes: dict[str, Any]) -> "UserPreferences":
        """Shallow-merge changes on top of these preferences; quiet_hours merges one level deeper."""
        data = self.model_dump()
        for key, value in changes.items():
            if key == "quiet_hours" and isinstance(value, dict):
                data["quiet_hours"] = {**data["quiet_hours"], **value}
            else:
                data[key] = value
        return parse_preferences(data)


_PREFERENCE_FLAGS = {
    NotificationType.DAILY_REMINDER: "daily_reminders",
    NotificationType.MILESTONE: "milestone_alerts",
    NotificationType.STREAK: "streak_notifications",
    NotificationType.TIP: "saving_tips",
    NotificationType.CHALLENGE_UPDATE: "challenge_updates",
}


def parse_preferences(raw: Any) -> UserPreferences:
    """
    Build preferences from a stored JSON object.

    Missing keys fall back to defaults.

    Raises:
        InvalidPreferenceError: raw is not an object or a value is out of range
    """
    if raw is None:
        return UserPreferences()
    if not isinstance(raw, dict):
        raise InvalidPreferenceError(f"preferences must be an object, got {type(raw).__name__}")
    try:
        return UserPreferences.model_validate(raw)
    except ValidationError as exc:
        raise InvalidPreferenceError(str(exc)) from exc
