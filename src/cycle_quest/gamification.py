from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, timedelta

from cycle_quest.models import (
    DEFAULT_TITLE,
    Achievement,
    ActiveQuest,
    Cycle,
    GamificationProfile,
)

XP_LEVEL_UNIT = 100

TITLES = {
    1: DEFAULT_TITLE,
    2: "Apprentice",
    3: "Grinder",
    4: "Operator",
    5: "Strategist",
    6: "Veteran",
    7: "Expert",
    8: "Shark",
    9: "High Roller",
    10: "Master",
    12: "Grandmaster",
    15: "Whale",
    20: "Legend",
    25: "Mythic",
    30: "Immortal",
}


@dataclass(frozen=True)
class LevelInfo:
    level: int
    current_xp: int
    next_level_xp: int


@dataclass(frozen=True)
class LevelProgress:
    level: int
    title: str
    current_level_floor: int
    next_level_xp: int
    progress_percent: float
    remaining_to_next: int


def _clean_xp(total_xp: float | int | None) -> int:
    if total_xp is None:
        return 0
    try:
        value = float(total_xp)
    except (TypeError, ValueError):
        return 0
    if math.isnan(value) or math.isinf(value):
        return 0
    return max(0, int(value))


def level_from_xp(total_xp: float | int | None) -> int:
    xp = _clean_xp(total_xp)
    return math.floor(math.sqrt(xp / XP_LEVEL_UNIT)) + 1


def xp_for_level(level: int) -> int:
    """Total XP at which ``level`` starts."""
    if level <= 1:
        return 0
    return XP_LEVEL_UNIT * (level - 1) ** 2


def calculate_level(total_xp: float | int | None) -> LevelInfo:
    xp = _clean_xp(total_xp)
    level = level_from_xp(xp)
    return LevelInfo(level=level, current_xp=xp, next_level_xp=XP_LEVEL_UNIT * level * level)


def get_title(level: int) -> str:
    best = DEFAULT_TITLE
    for threshold in sorted(TITLES):
        if level >= threshold:
            best = TITLES[threshold]
    return best


def earned_titles(level: int) -> tuple[str, ...]:
    return tuple(TITLES[t] for t in sorted(TITLES) if t <= max(1, level))


def level_progress(total_xp: float | int | None) -> LevelProgress:
    info = calculate_level(total_xp)
    floor_xp = xp_for_level(info.level)
    span = max(info.next_level_xp - floor_xp, 1)
    percent = min(100.0, max(0.0, (info.current_xp - floor_xp) / span * 100))
    return LevelProgress(
        level=info.level,
        title=get_title(info.level),
        current_level_floor=floor_xp,
        next_level_xp=info.next_level_xp,
        progress_percent=percent,
        remaining_to_next=max(info.next_level_xp - info.current_xp, 0),
    )


def day_streak(cycles: Iterable[Cycle], today: date) -> int:
    """Consecutive active days ending today or yesterday; 0 when the run is broken."""
    days = {c.date for c in cycles if c.date <= today}
    if not days:
        return 0
    latest = max(days)
    if latest < today - timedelta(days=1):
        return 0
    streak = 0
    day = latest
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def total_experience(quests: Iterable[ActiveQuest], achievements: Iterable[Achievement]) -> int:
    quest_xp = sum(q.reward_xp for q in quests if q.is_completed)
    ach_xp = sum(a.reward_xp for a in achievements if a.is_unlocked)
    return quest_xp + ach_xp


def build_profile(
    previous: GamificationProfile,
    total_xp: int,
    cycles: Sequence[Cycle],
    today: date,
) -> GamificationProfile:
    info = calculate_level(total_xp)
    titles = list(previous.titles)
    for title in earned_titles(info.level):
        if title not in titles:
            titles.append(title)
    equipped = previous.equipped_title if previous.equipped_title in titles else get_title(info.level)
    return GamificationProfile(
        level=info.level,
        current_xp=info.current_xp,
        next_level_xp=info.next_level_xp,
        total_xp=info.current_xp,
        streak_days=day_streak(cycles, today),
        last_active_date=today,
        titles=tuple(titles),
        equipped_title=equipped,
    )
