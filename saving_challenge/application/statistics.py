"""
StatisticsAggregator — totals, streaks and period windows from the savings log.

The savings log is the source of truth; the streak counters on the user
profile are a cache written back from here and nowhere else.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal

from saving_challenge.domain.errors import NotFoundError
from saving_challenge.domain.saving import Challenge, SavingEvent
from saving_challenge.domain.streak import current_streak
from saving_challenge.infrastructure.storage import Storage

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class PeriodStats:
    amount: Decimal = ZERO
    entries: int = 0
    days: int = 0

    @property
    def average(self) -> Decimal:
        """Amount per distinct saving day in the window."""
        return self.amount / max(1, self.days)


@dataclass
class ChallengeSummary:
    active: int = 0
    target_total: Decimal = ZERO
    saved_total: Decimal = ZERO
    current: Challenge | None = None


@dataclass
class Stats:
    user_id: int
    as_of: date
    total_savings: Decimal = ZERO
    current_streak: int = 0
    longest_streak: int = 0
    today: PeriodStats = field(default_factory=PeriodStats)
    week: PeriodStats = field(default_factory=PeriodStats)
    month: PeriodStats = field(default_factory=PeriodStats)
    challenges: ChallengeSummary = field(default_factory=ChallengeSummary)


def week_start(as_of: date, first_weekday: int) -> date:
    """First day of the calendar week containing as_of (0=Monday ... 6=Sunday)."""
    return as_of - timedelta(days=(as_of.weekday() - first_weekday) % 7)


def _window(by_date: dict[date, list[SavingEvent]], start: date, end: date) -> PeriodStats:
    stats = PeriodStats()
    for d, events in by_date.items():
        if start <= d <= end:
            stats.amount += sum((e.amount for e in events), ZERO)
            stats.entries += len(events)
            stats.days += 1
    return stats


def summarize_events(events: list[SavingEvent], as_of: date, first_weekday: int) -> Stats:
    """Pure part of the computation: everything except the profile write-back."""
    by_date: dict[date, list[SavingEvent]] = {}
    for e in events:
        if e.occurred_on > as_of:
            continue
        by_date.setdefault(e.occurred_on, []).append(e)

    stats = Stats(user_id=events[0].user_id if events else 0, as_of=as_of)
    stats.total_savings = sum((e.amount for day in by_date.values() for e in day), ZERO)
    stats.current_streak = current_streak(by_date.keys())
    stats.today = _window(by_date, as_of, as_of)
    stats.week = _window(by_date, week_start(as_of, first_weekday), as_of)
    stats.month = _window(by_date, as_of.replace(day=1), as_of)
    return stats


class StatisticsAggregator:
    def __init__(self, storage: Storage, first_weekday: int = 6):
        self.storage = storage
        self.first_weekday = first_weekday

    async def compute_stats(self, user_id: int, as_of: date) -> Stats:
        """
        Compute statistics for a user as of a calendar date.

        Writes current_streak/longest_streak back to the profile when the
        current streak changed.

        Raises:
            NotFoundError: user does not exist
            StorageError: a storage read or write failed
        """
        user = await self.storage.get_user(user_id)
        if user is None:
            raise NotFoundError("user", user_id)

        events = await self.storage.get_saving_events(user_id)
        challenges = await self.storage.get_active_challenges(user_id)

        stats = summarize_events(events, as_of, self.first_weekday)
        stats.user_id = user_id
        stats.longest_streak = max(user.longest_streak, stats.current_streak)
        stats.challenges = ChallengeSummary(
            active=len(challenges),
            target_total=sum((c.target_amount for c in challenges), ZERO),
            saved_total=sum((c.current_amount for c in challenges), ZERO),
            current=challenges[0] if challenges else None,
        )

        if user.current_streak != stats.current_streak:
            logger.info(
                "Streak for user_id=%s changed %s -> %s (longest %s)",
                user_id, user.current_streak, stats.current_streak, stats.longest_streak,
            )
            await self.storage.update_user(user_id, {
                "current_streak": stats.current_streak,
                "longest_streak": stats.longest_streak,
            })
        return stats
