"""
Experience points, levels and daily streaks.
"""
from dataclasses import dataclass
from datetime import date
from typing import Optional

from aithreya.core.errors import InvalidArgument
from aithreya.models.orm import User

XP_PER_LEVEL = 100
XP_PER_COMPLETION = 10


@dataclass(frozen=True)
class LevelChange:
    leveled_up: bool
    new_level: Optional[int] = None


def level_for(experience_points: int) -> int:
    return experience_points // XP_PER_LEVEL + 1


def quiz_experience(score: float) -> int:
    return int(score // 10)


def add_experience(user: User, points: int) -> LevelChange:
    if points < 0:
        raise InvalidArgument.for_field("points", "Experience points cannot be negative")
    previous = user.level
    user.experience_points += points
    user.level = level_for(user.experience_points)
    if user.level > previous:
        return LevelChange(True, user.level)
    return LevelChange(False)


def update_streak(user: User, today: date) -> None:
    """Record activity on ``today`` (a calendar day in UTC)."""
    last = user.streak_last_active_date
    if last == today:
        return
    if last is not None and (today - last).days == 1:
        user.streak_current += 1
    else:
        user.streak_current = 1
    user.streak_longest = max(user.streak_longest, user.streak_current)
    user.streak_last_active_date = today
