"""Milestone thresholds, bands and marker keys"""
from dataclasses import dataclass
from typing import Any

PROGRESS_THRESHOLDS = (25, 50, 75, 90, 100)
STREAK_THRESHOLDS = (3, 7, 14, 30, 60, 90)
BAND_WIDTH = 5

KIND_PROGRESS = "progress"
KIND_STREAK = "streak"


def in_band(progress: int, threshold: int) -> bool:
    """progress in [threshold, threshold + 5); the top threshold band is clamped to 100."""
    upper = threshold + BAND_WIDTH
    if threshold == PROGRESS_THRESHOLDS[-1]:
        upper = threshold + 1
    return threshold <= progress < upper


def progress_marker_key(challenge_id: int, threshold: int) -> str:
    return f"milestone_{challenge_id}_{threshold}"


def streak_marker_key(user_id: int, days: int) -> str:
    return f"streak_milestone_{user_id}_{days}"


@dataclass(frozen=True)
class MilestoneEvent:
    kind: str
    user_id: int
    threshold: int
    challenge_id: int | None = None
    challenge_name: str | None = None

    def to_payload(self) -> dict[str, Any]:
        if self.kind == KIND_STREAK:
            return {"user_id": self.user_id, "days": self.threshold}
        return {
            "user_id": self.user_id,
            "percentage": self.threshold,
            "challenge_id": self.challenge_id,
            "challenge_name": self.challenge_name,
        }
