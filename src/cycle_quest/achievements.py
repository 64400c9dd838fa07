from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, timezone

from cycle_quest.models import Achievement, Cycle
from cycle_quest.quests import created_ts, longest_win_run
from cycle_quest.time_utils import to_local, week_start_date
from cycle_quest.tuning import effective_tuning

THRESHOLD_METRICS = ("volume", "profit", "chest", "day_streak", "win_streak")


@dataclass(frozen=True)
class Aggregates:
    count: int
    total_profit: float
    total_chest: float
    has_win: bool
    longest_day_streak: int
    longest_win_streak: int
    comeback: bool
    longest_night_run: int
    perfect_week: bool


@dataclass(frozen=True)
class AchievementEvaluation:
    achievements: list[Achievement]
    new_unlocks: list[Achievement]


def _longest_consecutive_days(days: set[date]) -> int:
    longest = 0
    for day in days:
        if day - timedelta(days=1) in days:
            continue
        run = 1
        while day + timedelta(days=run) in days:
            run += 1
        longest = max(longest, run)
    return longest


def _has_comeback(cycles: Sequence[Cycle], drawdown: float) -> bool:
    by_day: dict[date, list[Cycle]] = {}
    for cycle in cycles:
        by_day.setdefault(cycle.date, []).append(cycle)
    for day_cycles in by_day.values():
        running = 0.0
        lowest = 0.0
        for cycle in sorted(day_cycles, key=created_ts):
            running += cycle.profit
            lowest = min(lowest, running)
        if lowest <= -drawdown and running >= 0:
            return True
    return False


def _night_days(cycles: Sequence[Cycle], until_hour: int, tz_name: str | None) -> set[date]:
    stamps = [to_local(c.created_at, tz_name) for c in cycles if c.created_at is not None]
    return {ts.date() for ts in stamps if ts.hour < until_hour}


def _has_perfect_week(cycles: Sequence[Cycle], min_cycles: int) -> bool:
    weeks: dict[date, list[Cycle]] = {}
    for cycle in cycles:
        weeks.setdefault(week_start_date(cycle.date), []).append(cycle)
    for week_cycles in weeks.values():
        if len(week_cycles) < min_cycles:
            continue
        nets: dict[date, float] = {}
        for cycle in week_cycles:
            nets[cycle.date] = nets.get(cycle.date, 0.0) + cycle.profit
        if len(nets) == 7 and all(net > 0 for net in nets.values()):
            return True
    return False


def collect_aggregates(
    cycles: Sequence[Cycle],
    tuning: dict[str, int] | None = None,
    tz_name: str | None = None,
) -> Aggregates:
    cfg = effective_tuning(tuning)
    return Aggregates(
        count=len(cycles),
        total_profit=sum(c.profit for c in cycles),
        total_chest=sum(c.chest for c in cycles),
        has_win=any(c.profit > 0 for c in cycles),
        longest_day_streak=_longest_consecutive_days({c.date for c in cycles}),
        longest_win_streak=longest_win_run(cycles),
        comeback=_has_comeback(cycles, float(cfg["comeback_drawdown"])),
        longest_night_run=_longest_consecutive_days(_night_days(cycles, int(cfg["night_owl_until_hour"]), tz_name)),
        perfect_week=_has_perfect_week(cycles, int(cfg["perfect_week_min_cycles"])),
    )


def _measure(achievement: Achievement, agg: Aggregates, cfg: dict[str, int]) -> tuple[float, bool]:
    metric = achievement.metric
    if metric in THRESHOLD_METRICS:
        current = {
            "volume": agg.count,
            "profit": agg.total_profit,
            "chest": agg.total_chest,
            "day_streak": agg.longest_day_streak,
            "win_streak": agg.longest_win_streak,
        }[metric]
        if achievement.target is None:
            return current, False
        return current, current >= achievement.target
    if metric == "first_cycle":
        return agg.count, agg.count > 0
    if metric == "first_win":
        return 0, agg.has_win
    if metric == "comeback":
        return 0, agg.comeback
    if metric == "night_owl":
        return agg.longest_night_run, agg.longest_night_run >= int(cfg["night_owl_days"])
    if metric == "perfect_week":
        return 0, agg.perfect_week
    return 0, False


def progress_percent(current: float, target: float | None) -> float:
    if not target:
        return 0.0
    return max(0.0, min(100.0, (current / target) * 100))


def evaluate_achievements(
    achievements: Sequence[Achievement],
    cycles: Sequence[Cycle],
    now: datetime | None = None,
    tuning: dict[str, int] | None = None,
    tz_name: str | None = None,
) -> AchievementEvaluation:
    """Night hours are read in ``tz_name``; without one, timestamps are used as stored."""
    cfg = effective_tuning(tuning)
    stamp = now or datetime.now(tz=timezone.utc)
    agg = collect_aggregates(cycles, tuning=cfg, tz_name=tz_name)

    updated: list[Achievement] = []
    new_unlocks: list[Achievement] = []
    for ach in achievements:
        if ach.is_unlocked:
            updated.append(ach)
            continue

        current, unlocked = _measure(ach, agg, cfg)
        if unlocked:
            fresh = replace(ach, is_unlocked=True, unlocked_at=stamp, current_value=current, progress=100.0)
            new_unlocks.append(fresh)
            updated.append(fresh)
            continue

        updated.append(replace(ach, current_value=current, progress=progress_percent(current, ach.target)))

    return AchievementEvaluation(achievements=updated, new_unlocks=new_unlocks)
