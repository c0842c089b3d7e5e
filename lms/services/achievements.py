"""Learning streak and achievement badges.

Everything here is derived on each call from the progress records and
an OverallProgress; no "earned" flag is stored anywhere, so a badge
disappears again if the condition stops holding (e.g. after unenrolling
from a completed course).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, timedelta, tzinfo

from lms.models.progress import OverallProgress, ProgressRecord

RECENT_ACTIVITY_DAYS = 7


@dataclass(frozen=True, slots=True)
class Achievement:
    type: str
    title: str
    icon: str


@dataclass(frozen=True, slots=True)
class AchievementRule:
    achievement: Achievement
    earned: Callable[[OverallProgress, int], bool]


ACHIEVEMENT_RULES: tuple[AchievementRule, ...] = (
    AchievementRule(
        Achievement("first_completion", "First Course Completed!", "🎉"),
        lambda overall, streak: overall.completed_courses >= 1,
    ),
    AchievementRule(
        Achievement("triple_completion", "Course Master", "🏆"),
        lambda overall, streak: overall.completed_courses >= 3,
    ),
    AchievementRule(
        Achievement("halfway_hero", "Halfway Hero", "⭐"),
        lambda overall, streak: overall.average_progress >= 50,
    ),
    AchievementRule(
        Achievement("week_streak", "Week Warrior", "🔥"),
        lambda overall, streak: streak >= 7,
    ),
    AchievementRule(
        Achievement("course_collector", "Course Collector", "📚"),
        lambda overall, streak: overall.total_courses >= 5,
    ),
)


@dataclass(frozen=True, slots=True)
class LearningStats:
    current_streak: int
    total_active_days: int
    achievements: tuple[Achievement, ...]
    recent_activity: tuple[date, ...]
    overall: OverallProgress


def active_days(records: Iterable[ProgressRecord], tz: tzinfo | None = None) -> set[date]:
    """Local calendar dates with at least one lesson access.

    tz=None converts to the system's local timezone.
    """
    return {
        r.last_accessed.astimezone(tz).date()
        for r in records
        if r.last_accessed is not None
    }


def current_streak(days: set[date], today: date) -> int:
    """Consecutive active days ending today; 0 when today had no activity."""
    streak = 0
    day = today
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def earned_achievements(overall: OverallProgress, streak: int) -> tuple[Achievement, ...]:
    return tuple(
        rule.achievement for rule in ACHIEVEMENT_RULES if rule.earned(overall, streak)
    )


def learning_stats(
    records: Iterable[ProgressRecord],
    overall: OverallProgress,
    *,
    today: date,
    tz: tzinfo | None = None,
) -> LearningStats:
    days = active_days(records, tz)
    streak = current_streak(days, today)
    return LearningStats(
        current_streak=streak,
        total_active_days=len(days),
        achievements=earned_achievements(overall, streak),
        recent_activity=tuple(sorted(days, reverse=True)[:RECENT_ACTIVITY_DAYS]),
        overall=overall,
    )
