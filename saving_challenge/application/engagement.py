"""
Engagement use cases — the entry points of the engine.

record_saving() stores an entry and publishes SavingRecorded. The subscriber
runs the fixed sequence: statistics -> streak milestone -> progress milestone
-> notification attempts. A failure anywhere after the entry is stored is
logged and never reaches the caller of record_saving().
"""
import logging
import random
from datetime import date, datetime
from typing import Any, Callable

from saving_challenge.application.events import (
    ChallengeCompleted,
    EventBus,
    PreferencesChanged,
    SavingRecorded,
)
from saving_challenge.application.milestones import MilestoneTracker
from saving_challenge.application.notification_policy import NotificationPolicyEngine
from saving_challenge.application.scheduler import NotificationScheduler
from saving_challenge.application.statistics import Stats, StatisticsAggregator
from saving_challenge.config import Settings, get_settings
from saving_challenge.domain.notification import NotificationType, SendResult
from saving_challenge.domain.preferences import UserPreferences
from saving_challenge.domain.saving import CHALLENGE_ACTIVE, CHALLENGE_COMPLETED, Challenge, SavingEvent
from saving_challenge.infrastructure.storage import Storage
from saving_challenge.utils.money import format_amount
from saving_challenge.utils.validation import parse_saving_amount

logger = logging.getLogger(__name__)


class EngagementService:
    def __init__(
        self,
        storage: Storage,
        policy: NotificationPolicyEngine,
        aggregator: StatisticsAggregator | None = None,
        tracker: MilestoneTracker | None = None,
        scheduler: NotificationScheduler | None = None,
        bus: EventBus | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
        rng: random.Random | None = None,
    ):
        self.storage = storage
        self.policy = policy
        self.settings = settings or get_settings()
        self.aggregator = aggregator or StatisticsAggregator(storage, self.settings.FIRST_WEEKDAY)
        self.tracker = tracker or MilestoneTracker(storage)
        self.scheduler = scheduler
        self.clock = clock or policy.clock
        self.rng = rng or random.Random()

        self.bus = bus or EventBus()
        self.bus.subscribe(SavingRecorded, self._handle_saving_recorded)
        self.bus.subscribe(ChallengeCompleted, self._handle_challenge_completed)
        self.bus.subscribe(PreferencesChanged, self._handle_preferences_changed)

    # --- lifecycle ---

    async def start(self) -> None:
        await self.storage.ensure_user(self.settings.DEFAULT_USER_ID)
        await self.policy.load_preferences()
        if self.scheduler is not None:
            self.scheduler.start()

    def stop(self) -> None:
        if self.scheduler is not None:
            self.scheduler.shutdown()

    def _today(self) -> date:
        now = self.clock()
        if now.tzinfo is not None:
            now = now.astimezone(self.settings.tz)
        return now.date()

    # --- save-entry flow ---

    async def record_saving(
        self,
        user_id: int,
        amount,
        category: str = "general",
        note: str | None = None,
        challenge_id: int | None = None,
        occurred_on: date | None = None,
    ) -> SavingEvent:
        """
        Store a saving entry and run the engagement flow for it.

        Without challenge_id the entry goes to the user's first active challenge.

        Raises:
            SavingValidationError: amount is not a positive number
            NotFoundError: user does not exist
            StorageError: the entry itself could not be stored
        """
        amount = parse_saving_amount(amount)
        if challenge_id is None:
            active = await self.storage.get_active_challenges(user_id)
            challenge_id = active[0].id if active else None

        saving = await self.storage.add_saving(
            user_id=user_id,
            amount=amount,
            occurred_on=occurred_on or self._today(),
            category=category,
            note=note,
            challenge_id=challenge_id,
            created_at=self.clock(),
        )
        logger.info("Saving id=%s recorded: %s for user_id=%s", saving.id, amount, user_id)

        try:
            await self.bus.publish(SavingRecorded(saving))
        except Exception:
            logger.exception("Engagement flow failed for saving id=%s", saving.id)
        return saving

    async def _handle_saving_recorded(self, event: SavingRecorded) -> None:
        await self.on_saving_recorded(event.saving)

    async def on_saving_recorded(self, saving: SavingEvent) -> list[SendResult]:
        """Recompute stats, check milestones and attempt the resulting notifications, in that order."""
        user_id = saving.user_id
        results: list[SendResult] = []

        stats = await self.aggregator.compute_stats(user_id, self._today())

        streak_event = await self.tracker.check_streak_milestones(user_id, stats.current_streak)
        if streak_event is not None:
            results.append(await self.policy.try_send(NotificationType.STREAK, streak_event.to_payload()))

        completed: Challenge | None = None
        if saving.challenge_id is not None:
            challenge = await self.storage.get_challenge(saving.challenge_id)
            if challenge is not None:
                progress_event = await self.tracker.check_progress_milestones(challenge)
                if progress_event is not None:
                    results.append(await self.policy.try_send(NotificationType.MILESTONE, progress_event.to_payload()))
                if challenge.status == CHALLENGE_ACTIVE and challenge.current_amount >= challenge.target_amount:
                    await self.storage.update_challenge(challenge.id, {"status": CHALLENGE_COMPLETED})
                    challenge.status = CHALLENGE_COMPLETED
                    completed = challenge

        if completed is not None:
            await self.bus.publish(ChallengeCompleted(completed))

        if self.rng.random() < self.settings.MOTIVATION_AFTER_SAVING_CHANCE:
            results.append(await self.policy.try_send(NotificationType.MOTIVATION, {"user_id": user_id}))

        results.append(await self.policy.try_send(NotificationType.SYSTEM, {
            "title": "💰 New saving!",
            "message": f"{format_amount(saving.amount, self.settings.CURRENCY)} added successfully",
            "user_id": user_id,
            "saving_id": saving.id,
        }))
        return results

    async def on_challenge_completed(self, challenge: Challenge) -> SendResult:
        return await self.policy.try_send(NotificationType.ACHIEVEMENT, {
            "title": "🎯 Challenge complete!",
            "description": f'Congratulations! You completed the "{challenge.name}" challenge',
            "user_id": challenge.user_id,
            "challenge_id": challenge.id,
        })

    async def _handle_challenge_completed(self, event: ChallengeCompleted) -> None:
        await self.on_challenge_completed(event.challenge)

    # --- statistics ---

    async def get_stats(self, user_id: int, as_of: date | None = None) -> Stats:
        return await self.aggregator.compute_stats(user_id, as_of or self._today())

    # --- preferences ---

    async def update_preferences(self, changes: dict[str, Any]) -> UserPreferences:
        """
        Merge, persist and apply new notification preferences.

        Raises:
            InvalidPreferenceError: a changed value is out of range
        """
        self.policy.preferences = self.policy.preferences.merged(changes)
        await self.policy.save_preferences()
        await self.bus.publish(PreferencesChanged(changes))
        return self.policy.preferences

    async def _handle_preferences_changed(self, event: PreferencesChanged) -> None:
        if self.scheduler is not None:
            self.scheduler.reschedule_all()

    # --- notifications ---

    async def send_custom_notification(self, title: str, message: str, user_id: int | None = None,
                                       notification_type=NotificationType.SYSTEM) -> SendResult:
        return await self.policy.try_send(notification_type, {
            "title": title,
            "message": message,
            "user_id": user_id or self.settings.DEFAULT_USER_ID,
        })

    async def get_notification_stats(self, user_id: int) -> dict:
        """Counts of notifications: total, unread, per type and created today."""
        records = await self.storage.get_notification_records(user_id)
        today = self._today()
        by_type: dict[str, int] = {}
        today_count = 0
        for r in records:
            key = r.type.value if isinstance(r.type, NotificationType) else str(r.type)
            by_type[key] = by_type.get(key, 0) + 1
            created = r.created_at
            if created is not None:
                if created.tzinfo is not None:
                    created = created.astimezone(self.settings.tz)
                if created.date() == today:
                    today_count += 1
        return {
            "total": len(records),
            "unread": sum(1 for r in records if not r.is_read),
            "by_type": by_type,
            "today": today_count,
        }
