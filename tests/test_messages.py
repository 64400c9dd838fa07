from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timezone

from cycle_quest.catalog import ACHIEVEMENTS_BY_ID, TEMPLATES_BY_ID
from cycle_quest.gamification import level_progress
from cycle_quest.messages import (
    achievement_display,
    achievement_unlocked_message,
    level_summary,
    level_up_message,
    quest_completed_message,
)
from cycle_quest.models import ActiveQuest


def test_locked_secret_is_masked() -> None:
    shown = achievement_display(ACHIEVEMENTS_BY_ID["sec_comeback"])
    assert shown.title == "???"
    assert "Phoenix" not in shown.description
    assert shown.is_unlocked is False


def test_unlocked_secret_is_revealed() -> None:
    unlocked = replace(
        ACHIEVEMENTS_BY_ID["sec_comeback"],
        is_unlocked=True,
        unlocked_at=datetime(2024, 6, 12, tzinfo=timezone.utc),
        progress=100.0,
    )
    shown = achievement_display(unlocked)
    assert shown.title == "The Phoenix"
    assert shown.progress == 100.0


def test_regular_achievement_shows_progress_while_locked() -> None:
    shown = achievement_display(replace(ACHIEVEMENTS_BY_ID["ach_vol_10"], progress=40.0))
    assert shown.title == "Beginner"
    assert shown.progress == 40.0


def test_notification_texts() -> None:
    assert achievement_unlocked_message(ACHIEVEMENTS_BY_ID["ach_win"]) == (
        "🏆 Achievement unlocked: First Green (+100 XP)"
    )
    day = date(2024, 6, 12)
    quest = ActiveQuest(TEMPLATES_BY_ID["w_vol_50"], day, day, 50, True)
    assert quest_completed_message(quest) == "✅ Weekly quest complete: High Volume (+500 XP)"
    assert level_up_message(3, "Grinder") == "⬆️ Level up! You reached Level 3 — Grinder"


def test_level_summary() -> None:
    text = level_summary(level_progress(150), 150)
    lines = text.splitlines()
    assert lines[0] == "⚡ Level 2 — Apprentice"
    assert lines[1] == "📊 XP: 150 / 400 (250 to Level 3)"
    assert lines[2].endswith("16.7%")
