"""Streak calculation over calendar dates with savings"""
from datetime import date, timedelta
from typing import Iterable


def current_streak(saved_dates: Iterable[date]) -> int:
    """
    Count consecutive days ending at the most recent saved date.

    Duplicate dates count once. The count is anchored to the latest date in
    the set, not to today: a gap between the last saving and today does not
    reset it.
    """
    dates = sorted(set(saved_dates), reverse=True)
    if not dates:
        return 0
    streak = 1
    prev = dates[0]
    for d in dates[1:]:
        if prev - d != timedelta(days=1):
            break
        streak += 1
        prev = d
    return streak
