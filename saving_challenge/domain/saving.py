"""Saving entries, user profile and challenges as seen by the engagement engine"""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP

CHALLENGE_ACTIVE = "active"
CHALLENGE_COMPLETED = "completed"


@dataclass(frozen=True)
class SavingEvent:
    id: int
    user_id: int
    amount: Decimal
    occurred_on: date
    created_at: datetime
    category: str = "general"
    challenge_id: int | None = None
    note: str | None = None


@dataclass
class UserProfile:
    id: int
    username: str = ""
    total_savings: Decimal = Decimal("0")
    current_streak: int = 0
    longest_streak: int = 0


@dataclass
class Challenge:
    id: int
    user_id: int
    name: str
    target_amount: Decimal
    current_amount: Decimal = Decimal("0")
    status: str = CHALLENGE_ACTIVE
    created_at: datetime | None = field(default=None, compare=False)

    @property
    def progress_percent(self) -> int:
        return progress_percent(self.current_amount, self.target_amount)


def progress_percent(current: Decimal, target: Decimal) -> int:
    """min(100, round(current / target * 100)), halves rounded up."""
    if target <= 0:
        return 0
    pct = (Decimal(current) / Decimal(target) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return min(100, int(pct))
