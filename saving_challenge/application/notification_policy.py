"""
Notification policy engine — decides whether a notification goes out.

Architecture:
- _TEMPLATES: title/body/icon/color per notification type
- EngineState: mutable state owned by one engine instance (last emission time)
- NotificationPolicyEngine.try_send(): quiet hours -> cooldown -> preferences
  -> content -> persist + deliver. Every refusal is a Suppressed result.
"""
import asyncio
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable

from saving_challenge.config import Settings, get_settings
from saving_challenge.domain.errors import InvalidPreferenceError
from saving_challenge.domain.notification import (
    ALWAYS_ALLOWED,
    NotificationRecord,
    NotificationType,
    SendResult,
    Sent,
    Suppressed,
    SuppressReason,
)
from saving_challenge.domain.preferences import (
    PREFERENCES_SETTING_KEY,
    UserPreferences,
    parse_preferences,
)
from saving_challenge.infrastructure.storage import DeliverySink, Storage

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Message templates
# ---------------------------------------------------------------------------

_DAILY_REMINDERS = (
    "Don't forget to log today's savings. Every coin makes a difference!",
    "Time to water your savings tree! How much did you save today?",
    "Saving every day is a great habit, keep it up!",
    "Remember your goal! Every day brings you closer to it",
    "Small savings build a big future, keep going!",
    "A new day is a new chance to move your savings forward",
    "Your tree is waiting for today's care, add your savings!",
)

_TIPS = (
    "Plan the week's meals ahead to avoid unplanned takeaway orders",
    "Check discount coupon apps before any online purchase",
    "Try a no-spend day once a week",
    "Compare prices between shops before buying, differences can reach 30%",
    "Buy the products you use most in bulk",
    "Reuse things instead of buying new ones whenever you can",
    "Learn to fix simple things yourself",
    "Walk or take public transport for short distances",
    "Carry a water bottle to avoid buying expensive drinks",
    "Buy cleaning supplies from wholesale shops instead of the supermarket",
)

_MOTIVATIONS = (
    "A journey of a thousand miles begins with one step, and every saving is a step toward your goal",
    "Saving is not deprivation, it is an investment in your future freedom",
    "Success is no accident: it is steady effort and steady saving",
    "Every pound you save today is a brick in your secure financial future",
    "You are stronger than you think, and your saving proves it every day",
    "The future belongs to those who believe in their dreams, and you are one of them",
    "Leaders are made by daily decisions like your decision to save",
)

_TEMPLATES: dict[NotificationType, dict] = {
    NotificationType.DAILY_REMINDER: {
        "title": "⏰ Time to save!",
        "body_pool": _DAILY_REMINDERS,
        "icon": "💰",
        "color": "#10B981",
    },
    NotificationType.MILESTONE: {
        "title": "🎉 {percentage}% reached!",
        "body": "You reached {percentage}% of your goal in {challenge_name}",
        "icon": "🏆",
        "color": "#F59E0B",
    },
    NotificationType.STREAK: {
        "title": "🔥 {days} days in a row!",
        "body": "You have been saving for {days} days in a row! Keep up the great momentum",
        "icon": "🔥",
        "color": "#EF4444",
    },
    NotificationType.ACHIEVEMENT: {
        "title": "🏆 {title}",
        "body": "{description}",
        "icon": "🏆",
        "color": "#8B5CF6",
    },
    NotificationType.TIP: {
        "title": "💡 Saving tip",
        "body_pool": _TIPS,
        "icon": "💡",
        "color": "#3B82F6",
    },
    NotificationType.MOTIVATION: {
        "title": "💪 A word of motivation",
        "body_pool": _MOTIVATIONS,
        "icon": "🌟",
        "color": "#8B5CF6",
    },
    NotificationType.CHALLENGE_UPDATE: {
        "title": "{title}",
        "title_fallback": "📊 Challenge update",
        "body": "{message}",
        "icon": "📊",
        "color": "#10B981",
    },
    NotificationType.SYSTEM: {
        "title": "{title}",
        "body": "{message}",
        "icon": "🔔",
        "color": "#6B7280",
    },
}


class _Context(dict):
    """format_map context: missing payload keys render as empty strings."""

    def __missing__(self, key):
        return ""


def build_content(notification_type: NotificationType, payload: dict[str, Any],
                  rng: random.Random) -> dict[str, str] | None:
    """Render title/body/icon/color for a type, or None when no template exists."""
    tmpl = _TEMPLATES.get(notification_type)
    if tmpl is None:
        return None
    ctx = _Context(payload)
    title = tmpl["title"].format_map(ctx)
    if not title and tmpl.get("title_fallback"):
        title = tmpl["title_fallback"]
    if "body_pool" in tmpl:
        body = rng.choice(tmpl["body_pool"])
    else:
        body = tmpl["body"].format_map(ctx)
    return {"title": title, "body": body, "icon": tmpl["icon"], "color": tmpl["color"]}


@dataclass
class EngineState:
    """Process-wide mutable state, reset on restart."""
    last_emitted_at: datetime | None = None


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class NotificationPolicyEngine:
    def __init__(
        self,
        storage: Storage,
        sink: DeliverySink,
        settings: Settings | None = None,
        state: EngineState | None = None,
        clock: Callable[[], datetime] | None = None,
        rng: random.Random | None = None,
    ):
        self.storage = storage
        self.sink = sink
        self.settings = settings or get_settings()
        self.state = state or EngineState()
        self.clock = clock or (lambda: datetime.now(self.settings.tz))
        self.rng = rng or random.Random()
        self.preferences = UserPreferences()
        self.cooldown = timedelta(minutes=self.settings.NOTIFICATION_COOLDOWN_MINUTES)

    # --- preferences ---

    async def load_preferences(self) -> UserPreferences:
        """Load stored preferences; anything malformed falls back to defaults."""
        raw = await self.storage.get_setting(PREFERENCES_SETTING_KEY)
        try:
            self.preferences = parse_preferences(raw)
        except InvalidPreferenceError as exc:
            logger.warning("Invalid notification preferences, using defaults: %s", exc)
            self.preferences = UserPreferences()
        return self.preferences

    async def save_preferences(self) -> None:
        await self.storage.save_setting(PREFERENCES_SETTING_KEY, self.preferences.model_dump())

    # --- gates ---

    def _now(self) -> datetime:
        now = self.clock()
        if now.tzinfo is not None:
            now = now.astimezone(self.settings.tz)
        return now

    def is_quiet_hours(self, now: datetime | None = None) -> bool:
        now = now or self._now()
        return self.preferences.quiet_hours.contains(now.hour)

    def is_cooldown_active(self, now: datetime | None = None) -> bool:
        last = self.state.last_emitted_at
        if last is None:
            return False
        now = now or self._now()
        return now - last < self.cooldown

    # --- send ---

    async def try_send(self, notification_type, payload: dict[str, Any] | None = None) -> SendResult:
        """
        Run one notification attempt through the policy gates.

        Returns Sent(record) when the notification was persisted and handed to
        the sink, Suppressed(reason) otherwise. Storage failures while
        persisting the record propagate.
        """
        payload = dict(payload or {})
        ntype = NotificationType.parse(notification_type)
        if ntype is None:
            logger.warning("Unknown notification type %r, suppressed", notification_type)
            return Suppressed(SuppressReason.UNKNOWN_TYPE)

        now = self._now()
        if ntype is not NotificationType.SYSTEM:
            if self.is_quiet_hours(now):
                logger.info("Quiet hours active, %s suppressed", ntype.value)
                return Suppressed(SuppressReason.QUIET_HOURS)
            if self.is_cooldown_active(now):
                logger.info("Cooldown active, %s suppressed", ntype.value)
                return Suppressed(SuppressReason.COOLDOWN)

        if ntype not in ALWAYS_ALLOWED and not self.preferences.allows(ntype):
            logger.debug("%s disabled in preferences", ntype.value)
            return Suppressed(SuppressReason.PREFERENCE_DISABLED)

        content = build_content(ntype, payload, self.rng)
        if content is None:
            return Suppressed(SuppressReason.UNKNOWN_TYPE)

        record = NotificationRecord(
            user_id=payload.get("user_id") or self.settings.DEFAULT_USER_ID,
            type=ntype,
            data=payload,
            created_at=now,
            **content,
        )
        record = await self.storage.add_notification_record(record)

        if ntype is not NotificationType.SYSTEM:
            self.state.last_emitted_at = now

        # Sinks may block on network I/O
        try:
            await asyncio.to_thread(self.sink.deliver, record)
        except Exception:
            logger.exception("Delivery failed for notification id=%s", record.id)

        logger.info("Notification sent: %s (%s)", record.title, ntype.value)
        return Sent(record)
