from __future__ import annotations

import logging
import random
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date

from cycle_quest.catalog import templates_for
from cycle_quest.models import ActiveQuest, Cycle, QuestTemplate, UserContext
from cycle_quest.time_utils import local_today, quest_window, to_local, window_anchor
from cycle_quest.tuning import effective_tuning, quest_count

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuestEvaluation:
    quests: list[ActiveQuest]
    xp_gained: int


def string_hash(value: str) -> int:
    """31-multiplier hash folded to a signed 32-bit int, returned as its absolute value."""
    h = 0
    for ch in value:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def quest_seed(anchor: date, identifier: str) -> int:
    return string_hash(anchor.isoformat()) + len(identifier)


def _draw_indices(pool_size: int, count: int, seed: int, attempts: int) -> list[int]:
    rng = random.Random(seed)
    used: list[int] = []
    for _ in range(min(count, pool_size)):
        index = int(rng.random() * pool_size)
        tries = 0
        while index in used and tries < attempts:
            index = int(rng.random() * pool_size)
            tries += 1
        if index in used:
            # Sequential fallback: first unused slot after the last draw, wrapping.
            for offset in range(1, pool_size):
                candidate = (index + offset) % pool_size
                if candidate not in used:
                    index = candidate
                    break
        used.append(index)
    return used


def quest_pool(frequency: str, user: UserContext) -> list[QuestTemplate]:
    pool = templates_for(frequency)
    if not user.is_pro:
        pool = [t for t in pool if not t.is_pro]
    return pool


def generate_quests(
    user: UserContext,
    frequency: str,
    existing: Iterable[ActiveQuest],
    today: date | None = None,
    tuning: dict[str, int] | None = None,
) -> list[ActiveQuest]:
    day = today or local_today(user.tz)
    window = quest_window(frequency, day)

    current = [q for q in existing if q.frequency == frequency and q.generated_at == window.anchor]
    if current:
        return current

    pool = quest_pool(frequency, user)
    if not pool:
        return []

    cfg = effective_tuning(tuning)
    seed = quest_seed(window.anchor, user.seed_identifier)
    indices = _draw_indices(len(pool), quest_count(frequency, cfg), seed, int(cfg["seed_retry_attempts"]))
    logger.debug(
        "generated %s quests user_id=%s anchor=%s ids=%s",
        frequency,
        user.user_id,
        window.anchor,
        [pool[i].id for i in indices],
    )
    return [
        ActiveQuest(
            template=pool[i],
            generated_at=window.anchor,
            expires_at=window.expires,
            current_value=0,
            is_completed=False,
        )
        for i in indices
    ]


def current_quests(quests: Iterable[ActiveQuest], today: date) -> list[ActiveQuest]:
    """Quests whose window is the one that contains ``today``."""
    return [q for q in quests if q.generated_at == window_anchor(q.frequency, today)]


def created_ts(cycle: Cycle) -> float:
    if cycle.created_at is None:
        return 0.0
    return cycle.created_at.timestamp()


def longest_win_run(cycles: Iterable[Cycle]) -> int:
    longest = 0
    running = 0
    for cycle in sorted(cycles, key=created_ts):
        if cycle.profit > 0:
            running += 1
            longest = max(longest, running)
        else:
            running = 0
    return longest


def _daily_nets(cycles: Sequence[Cycle]) -> dict[date, float]:
    nets: dict[date, float] = {}
    for cycle in cycles:
        nets[cycle.date] = nets.get(cycle.date, 0.0) + cycle.profit
    return nets


def _count_by_hour(cycles: Sequence[Cycle], tz_name: str | None, variant: str | None, cfg: dict[str, int]) -> int:
    total = 0
    for cycle in cycles:
        if cycle.created_at is None:
            continue
        hour = to_local(cycle.created_at, tz_name).hour
        if variant == "night":
            if hour >= int(cfg["night_from_hour"]):
                total += 1
        elif hour < int(cfg["morning_before_hour"]):
            total += 1
    return total


def metric_value(
    template: QuestTemplate,
    cycles: Sequence[Cycle],
    user: UserContext,
    tuning: dict[str, int] | None = None,
) -> float:
    cfg = effective_tuning(tuning)
    metric = template.metric

    if metric == "volume":
        return len(cycles)

    if metric == "profit":
        return sum(c.profit for c in cycles)

    if metric == "tags":
        return sum(1 for c in cycles if c.tags)

    if metric == "discipline":
        if template.variant == "no_red_day":
            nets = _daily_nets(cycles)
            if len(nets) < template.min_days:
                return 0
            return 0 if any(net < 0 for net in nets.values()) else 1
        threshold = cfg["severe_loss_threshold"]
        return 0 if any(c.profit < threshold for c in cycles) else 1

    if metric == "time":
        return _count_by_hour(cycles, user.tz, template.variant, cfg)

    if metric == "streak":
        return longest_win_run(cycles)

    if metric == "consistency":
        return len({c.date for c in cycles})

    return 0


def evaluate_quests(
    quests: Sequence[ActiveQuest],
    cycles: Sequence[Cycle],
    user: UserContext,
    today: date | None = None,
    tuning: dict[str, int] | None = None,
) -> QuestEvaluation:
    day = today or local_today(user.tz)
    todays = [c for c in cycles if c.date == day]

    xp_gained = 0
    updated: list[ActiveQuest] = []
    for quest in quests:
        if quest.is_completed:
            updated.append(quest)
            continue

        # Weekly and monthly quests look at whatever history the caller supplied.
        scope = todays if quest.frequency == "daily" else cycles
        value = metric_value(quest.template, scope, user, tuning=tuning)

        if value >= quest.target:
            xp_gained += quest.reward_xp
            updated.append(replace(quest, current_value=value, is_completed=True))
            continue
        updated.append(replace(quest, current_value=value))

    return QuestEvaluation(quests=updated, xp_gained=xp_gained)
