from __future__ import annotations

import json
import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any

from cycle_quest.catalog import ACHIEVEMENTS, TEMPLATES_BY_ID
from cycle_quest.models import (
    DEFAULT_TITLE,
    Achievement,
    ActiveQuest,
    Cycle,
    GamificationProfile,
)

logger = logging.getLogger(__name__)

PROFIT_TOLERANCE = 0.01
# Stands in for unlock rows stored without a timestamp.
UNKNOWN_UNLOCK_TIME = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_number(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return float(value or 0)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def to_int(value: Any) -> int:
    return int(to_number(value))


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on", "t"}
    return bool(value)


def parse_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Epoch milliseconds, the way browser clients stamp records.
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            return None
    return None


def parse_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and len(value.strip()) == 10:
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            return None
    parsed = parse_datetime(value)
    return parsed.date() if parsed else None


def parse_tags(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value if str(v).strip())
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return ()
        if raw.startswith("["):
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                return ()
            return parse_tags(data) if isinstance(data, list) else ()
        return tuple(part.strip() for part in raw.split(",") if part.strip())
    return ()


def derived_profit(deposit: float, withdrawal: float, chest: float) -> float:
    return withdrawal + chest - deposit


def cycle_from_row(row: Mapping[str, Any]) -> Cycle:
    deposit = to_number(row.get("deposit"))
    withdrawal = to_number(row.get("withdrawal"))
    chest = to_number(row.get("chest"))
    expected = derived_profit(deposit, withdrawal, chest)
    stored = row.get("profit")
    profit = to_number(stored) if stored is not None else expected
    if abs(profit - expected) > PROFIT_TOLERANCE:
        profit = expected

    created_at = parse_datetime(row.get("created_at"))
    day = parse_date(row.get("date")) or (created_at.date() if created_at else date.min)
    return Cycle(
        id=str(row.get("id") or ""),
        date=day,
        deposit=deposit,
        withdrawal=withdrawal,
        chest=chest,
        profit=profit,
        platform=str(row.get("platform") or ""),
        tags=parse_tags(row.get("tags")),
        notes=str(row.get("notes") or ""),
        created_at=created_at,
        deleted_at=parse_datetime(row.get("deleted_at")),
    )


def active_cycles(cycles: Iterable[Cycle]) -> list[Cycle]:
    return [c for c in cycles if c.deleted_at is None]


def quest_from_row(row: Mapping[str, Any]) -> ActiveQuest | None:
    template_id = str(row.get("template_id") or row.get("mission_id") or "")
    template = TEMPLATES_BY_ID.get(template_id)
    if template is None:
        logger.debug("dropping stored quest with unknown template id=%r", template_id)
        return None

    anchor = parse_date(row.get("generated_at")) or parse_date(row.get("created_at"))
    if anchor is None:
        logger.debug("dropping stored quest without window anchor id=%r", template_id)
        return None

    expires = parse_date(row.get("expires_at")) or anchor
    current = row.get("progress", row.get("current_value"))
    return ActiveQuest(
        template=template,
        generated_at=anchor,
        expires_at=expires,
        current_value=to_number(current),
        is_completed=to_bool(row.get("is_completed")),
    )


def quest_to_row(quest: ActiveQuest) -> dict[str, Any]:
    return {
        "template_id": quest.id,
        "frequency": quest.frequency,
        "metric": quest.metric,
        "generated_at": quest.generated_at.isoformat(),
        "expires_at": quest.expires_at.isoformat(),
        "progress": quest.current_value,
        "target": quest.target,
        "is_completed": quest.is_completed,
    }


def hydrate_quests(rows: Iterable[Mapping[str, Any]]) -> tuple[ActiveQuest, ...]:
    quests: list[ActiveQuest] = []
    for row in rows:
        quest = quest_from_row(row)
        if quest is not None:
            quests.append(quest)
    return tuple(quests)


def profile_from_dict(data: Mapping[str, Any] | None) -> GamificationProfile:
    base = GamificationProfile()
    if not isinstance(data, Mapping):
        return base

    raw_titles = data.get("titles")
    titles = parse_tags(raw_titles) or base.titles
    equipped = str(data.get("equipped_title") or data.get("equippedTitle") or titles[0] or DEFAULT_TITLE)
    level = max(1, to_int(data.get("level", base.level)))
    return GamificationProfile(
        level=level,
        current_xp=max(0, to_int(data.get("current_xp", data.get("currentXP")))),
        next_level_xp=to_int(data.get("next_level_xp", data.get("nextLevelXP"))) or base.next_level_xp,
        total_xp=max(0, to_int(data.get("total_xp", data.get("totalXP")))),
        streak_days=max(0, to_int(data.get("streak_days", data.get("streakDays")))),
        last_active_date=parse_date(data.get("last_active_date", data.get("lastActiveDate"))),
        titles=titles,
        equipped_title=equipped,
    )


def profile_to_dict(profile: GamificationProfile) -> dict[str, Any]:
    return {
        "level": profile.level,
        "current_xp": profile.current_xp,
        "next_level_xp": profile.next_level_xp,
        "total_xp": profile.total_xp,
        "streak_days": profile.streak_days,
        "last_active_date": profile.last_active_date.isoformat() if profile.last_active_date else None,
        "titles": list(profile.titles),
        "equipped_title": profile.equipped_title,
    }


def unlocks_from_rows(
    rows: Iterable[Mapping[str, Any]],
    fallback: datetime = UNKNOWN_UNLOCK_TIME,
) -> dict[str, datetime]:
    unlocks: dict[str, datetime] = {}
    for row in rows:
        ach_id = str(row.get("achievement_id") or row.get("id") or "")
        if not ach_id:
            continue
        unlocks[ach_id] = parse_datetime(row.get("unlocked_at")) or parse_datetime(row.get("created_at")) or fallback
    return unlocks


def achievements_with_unlocks(
    unlocks: Mapping[str, datetime],
    catalog: Iterable[Achievement] = ACHIEVEMENTS,
) -> list[Achievement]:
    merged: list[Achievement] = []
    for ach in catalog:
        unlocked_at = unlocks.get(ach.id)
        if unlocked_at is None:
            merged.append(ach)
            continue
        merged.append(replace(ach, is_unlocked=True, unlocked_at=unlocked_at, progress=100.0))
    return merged


def unlocks_from_achievements(achievements: Iterable[Achievement]) -> dict[str, datetime]:
    return {a.id: a.unlocked_at for a in achievements if a.is_unlocked and a.unlocked_at is not None}
