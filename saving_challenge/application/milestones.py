"""
MilestoneTracker — at-most-once detection of progress and streak milestones.

A marker setting is written the first time a threshold fires and is never
cleared. The read-check-write on markers runs under one asyncio.Lock so two
interleaved checks cannot both fire the same threshold.
"""
import asyncio
import logging

from saving_challenge.domain.milestone import (
    KIND_PROGRESS,
    KIND_STREAK,
    PROGRESS_THRESHOLDS,
    STREAK_THRESHOLDS,
    MilestoneEvent,
    in_band,
    progress_marker_key,
    streak_marker_key,
)
from saving_challenge.domain.saving import Challenge
from saving_challenge.infrastructure.storage import Storage

logger = logging.getLogger(__name__)


class MilestoneTracker:
    def __init__(self, storage: Storage):
        self.storage = storage
        self._lock = asyncio.Lock()

    async def check_progress_milestones(self, challenge: Challenge) -> MilestoneEvent | None:
        """Fire the first unfired threshold whose band contains the challenge's progress."""
        if challenge.target_amount <= 0:
            return None
        progress = challenge.progress_percent
        async with self._lock:
            for threshold in PROGRESS_THRESHOLDS:
                if not in_band(progress, threshold):
                    continue
                key = progress_marker_key(challenge.id, threshold)
                if await self.storage.get_setting(key):
                    continue
                await self.storage.save_setting(key, True)
                logger.info("Challenge #%s reached %s%% (progress %s%%)", challenge.id, threshold, progress)
                return MilestoneEvent(
                    kind=KIND_PROGRESS,
                    user_id=challenge.user_id,
                    threshold=threshold,
                    challenge_id=challenge.id,
                    challenge_name=challenge.name,
                )
        return None

    async def check_streak_milestones(self, user_id: int, days: int) -> MilestoneEvent | None:
        if days not in STREAK_THRESHOLDS:
            return None
        key = streak_marker_key(user_id, days)
        async with self._lock:
            if await self.storage.get_setting(key):
                return None
            await self.storage.save_setting(key, True)
        logger.info("User #%s reached a %s-day streak", user_id, days)
        return MilestoneEvent(kind=KIND_STREAK, user_id=user_id, threshold=days)
