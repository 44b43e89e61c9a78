"""
Notification scheduler — time-based triggers on the asyncio event loop.

Jobs (one-shot DateTrigger jobs that re-arm themselves after each run):
  - Daily reminder (20:00 local); skipped send during quiet hours, re-armed
  - Saving tip (every 3 days at 10:00 local); same quiet-hours behavior
  - Random motivation (every 6-12 hours, redrawn after each fire)

Nothing is persisted: reschedule_all() rebuilds the job set from the current
preferences.
"""
import logging
import random
from datetime import datetime, timedelta
from typing import Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from saving_challenge.application.notification_policy import NotificationPolicyEngine
from saving_challenge.config import Settings, get_settings
from saving_challenge.domain.notification import NotificationType

logger = logging.getLogger(__name__)

DAILY_REMINDER_JOB = "daily_reminder"
SAVING_TIP_JOB = "saving_tip"
MOTIVATION_JOB = "random_motivation"


def next_daily_run(now: datetime, hour: int) -> datetime:
    """Today at hour:00, or tomorrow if that moment is not in the future."""
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return target


def next_tip_run(now: datetime, hour: int, every_days: int) -> datetime:
    return (now + timedelta(days=every_days)).replace(hour=hour, minute=0, second=0, microsecond=0)


def draw_motivation_delay(rng: random.Random, min_hours: float, max_hours: float) -> timedelta:
    """Uniform delay in [min_hours, max_hours)."""
    return timedelta(hours=min_hours + rng.random() * (max_hours - min_hours))


class NotificationScheduler:
    def __init__(
        self,
        policy: NotificationPolicyEngine,
        settings: Settings | None = None,
        scheduler: AsyncIOScheduler | None = None,
        clock: Callable[[], datetime] | None = None,
        rng: random.Random | None = None,
    ):
        self.policy = policy
        self.settings = settings or get_settings()
        self.scheduler = scheduler or AsyncIOScheduler(timezone=self.settings.tz)
        self.clock = clock or policy.clock
        self.rng = rng or random.Random()
        # Bumped by cancel_all(); callbacks from an older generation do nothing
        self._generation = 0

    # --- lifecycle ---

    def start(self) -> None:
        """Arm all jobs and start the scheduler. Call from inside the running event loop."""
        self.reschedule_all()
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info("Scheduler started: %s", ", ".join(self.active_jobs()) or "no jobs")

    def shutdown(self) -> None:
        """Cancel every timer and stop the scheduler."""
        self.cancel_all()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    def cancel_all(self) -> None:
        self._generation += 1
        self.scheduler.remove_all_jobs()

    def reschedule_all(self) -> None:
        """Drop every pending timer and re-derive the set from current preferences."""
        self.cancel_all()
        prefs = self.policy.preferences
        if prefs.daily_reminders:
            self._arm_daily_reminder()
        if prefs.saving_tips:
            self._arm_saving_tip()
        self._arm_motivation()

    def active_jobs(self) -> list[str]:
        return sorted(job.id for job in self.scheduler.get_jobs())

    def run_date(self, job_id: str) -> datetime | None:
        job = self.scheduler.get_job(job_id)
        return job.trigger.run_date if job else None

    # --- arming ---

    def _now(self) -> datetime:
        now = self.clock()
        if now.tzinfo is not None:
            now = now.astimezone(self.settings.tz)
        return now

    def _add(self, job_id: str, func, run_at: datetime) -> None:
        if self.scheduler.get_job(job_id):
            self.scheduler.remove_job(job_id)
        self.scheduler.add_job(
            func,
            DateTrigger(run_date=run_at, timezone=self.settings.tz),
            args=[self._generation],
            id=job_id,
            replace_existing=True,
            misfire_grace_time=None,
            coalesce=True,
        )
        logger.debug("Armed %s for %s", job_id, run_at.isoformat())

    def _arm_daily_reminder(self) -> None:
        self._add(DAILY_REMINDER_JOB, self._fire_daily_reminder,
                  next_daily_run(self._now(), self.settings.DAILY_REMINDER_HOUR))

    def _arm_saving_tip(self) -> None:
        self._add(SAVING_TIP_JOB, self._fire_saving_tip,
                  next_tip_run(self._now(), self.settings.SAVING_TIP_HOUR, self.settings.SAVING_TIP_EVERY_DAYS))

    def _arm_motivation(self) -> None:
        delay = draw_motivation_delay(self.rng, self.settings.MOTIVATION_MIN_HOURS, self.settings.MOTIVATION_MAX_HOURS)
        self._add(MOTIVATION_JOB, self._fire_motivation, self._now() + delay)

    # --- callbacks ---

    async def _fire(self, generation: int, job_id: str, notification_type: NotificationType, rearm) -> None:
        if generation != self._generation:
            logger.debug("Stale %s callback ignored", job_id)
            return
        try:
            if self.policy.is_quiet_hours():
                logger.info("Quiet hours active, %s deferred", job_id)
            else:
                await self.policy.try_send(notification_type)
        except Exception:
            logger.exception("%s job failed", job_id)
        finally:
            if generation == self._generation:
                rearm()

    async def _fire_daily_reminder(self, generation: int) -> None:
        await self._fire(generation, DAILY_REMINDER_JOB, NotificationType.DAILY_REMINDER, self._arm_daily_reminder)

    async def _fire_saving_tip(self, generation: int) -> None:
        await self._fire(generation, SAVING_TIP_JOB, NotificationType.TIP, self._arm_saving_tip)

    async def _fire_motivation(self, generation: int) -> None:
        await self._fire(generation, MOTIVATION_JOB, NotificationType.MOTIVATION, self._arm_motivation)
