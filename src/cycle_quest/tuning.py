from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

DEFAULT_ENGINE_TUNING: dict[str, int] = {
    "quest_count_daily": 3,
    "quest_count_weekly": 3,
    "quest_count_monthly": 2,
    "seed_retry_attempts": 20,
    "severe_loss_threshold": -100,
    "morning_before_hour": 12,
    "night_from_hour": 20,
    "comeback_drawdown": 500,
    "night_owl_until_hour": 4,
    "night_owl_days": 5,
    "perfect_week_min_cycles": 50,
}


def effective_tuning(tuning: dict[str, int] | None = None) -> dict[str, int]:
    if not tuning:
        return dict(DEFAULT_ENGINE_TUNING)
    merged = dict(DEFAULT_ENGINE_TUNING)
    merged.update(tuning)
    return merged


def quest_count(frequency: str, tuning: dict[str, int] | None = None) -> int:
    cfg = effective_tuning(tuning)
    return max(0, int(cfg.get(f"quest_count_{frequency}", 0)))


def _coerce_section(raw: Any) -> dict[str, int]:
    if not isinstance(raw, dict):
        return {}
    out: dict[str, int] = {}
    for key, value in raw.items():
        name = str(key)
        if name not in DEFAULT_ENGINE_TUNING:
            continue
        try:
            out[name] = int(value)
        except (TypeError, ValueError):
            continue
    return out


def load_engine_tuning(path: Path) -> dict[str, int]:
    """Read engine tuning from YAML, ignoring unknown keys and bad values.

    Accepts either a flat mapping or one nested under an ``engine:`` key.
    """
    if not path.exists():
        return dict(DEFAULT_ENGINE_TUNING)

    raw = yaml.safe_load(path.read_text()) or {}
    if isinstance(raw, dict) and isinstance(raw.get("engine"), dict):
        raw = raw["engine"]
    return effective_tuning(_coerce_section(raw))
