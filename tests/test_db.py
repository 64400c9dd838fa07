from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from cycle_quest.catalog import TEMPLATES_BY_ID
from cycle_quest.db import Database
from cycle_quest.models import ActiveQuest, GamificationProfile, GamificationState
from cycle_quest.store import StoreError


def _dt(y: int, m: int, d: int, h: int = 10, minute: int = 0) -> datetime:
    return datetime(y, m, d, h, minute, tzinfo=ZoneInfo("America/Sao_Paulo"))


def _state() -> GamificationState:
    day = date(2024, 6, 12)
    return GamificationState(
        profile=GamificationProfile(
            level=2,
            current_xp=150,
            next_level_xp=400,
            total_xp=150,
            streak_days=1,
            last_active_date=day,
            titles=("Rookie", "Apprentice"),
            equipped_title="Apprentice",
        ),
        quests=(
            ActiveQuest(TEMPLATES_BY_ID["d_start"], day, day, current_value=1, is_completed=True),
            ActiveQuest(TEMPLATES_BY_ID["d_vol_5"], day, day, current_value=1.0),
        ),
        unlocks={"ach_start": _dt(2024, 6, 12, 9), "ach_win": _dt(2024, 6, 12, 9)},
    )


def test_migrations_are_idempotent(tmp_path) -> None:
    Database(tmp_path / "app.db")
    db = Database(tmp_path / "app.db")
    assert db.list_users() == []


def test_users_upsert_and_list(tmp_path) -> None:
    db = Database(tmp_path / "app.db")
    db.upsert_user("u1", "a@example.com", "free", _dt(2024, 6, 12))
    db.upsert_user("u1", "a@example.com", "pro", _dt(2024, 6, 13), tz="UTC")
    db.upsert_user("u0", "", "free", _dt(2024, 6, 13))
    user = db.get_user("u1")
    assert user is not None
    assert user.is_pro is True
    assert user.tz == "UTC"
    assert [u.user_id for u in db.list_users()] == ["u0", "u1"]
    assert db.get_user("missing") is None


def test_cycles_store_derived_profit_and_hide_deleted(tmp_path) -> None:
    db = Database(tmp_path / "app.db")
    first = db.add_cycle("u1", date(2024, 6, 12), 100, 150, 20, _dt(2024, 6, 12, 9), tags=["bonus"])
    second = db.add_cycle("u1", date(2024, 6, 13), 50, 0, 0, _dt(2024, 6, 13, 9))
    db.add_cycle("u2", date(2024, 6, 13), 50, 80, 0, _dt(2024, 6, 13, 9))
    assert first.profit == 70
    assert first.tags == ("bonus",)

    assert db.soft_delete_cycle("u1", second.id, _dt(2024, 6, 14)) is True
    assert db.soft_delete_cycle("u1", second.id, _dt(2024, 6, 14)) is False
    cycles = db.list_cycles("u1")
    assert [c.id for c in cycles] == [first.id]


def test_cycles_date_bounds(tmp_path) -> None:
    db = Database(tmp_path / "app.db")
    for day in (10, 11, 12, 13):
        db.add_cycle("u1", date(2024, 6, day), 10, 20, 0, _dt(2024, 6, day))
    cycles = db.list_cycles("u1", start=date(2024, 6, 11), end=date(2024, 6, 13))
    assert [c.date for c in cycles] == [date(2024, 6, 11), date(2024, 6, 12)]


def test_empty_state_for_unknown_user(tmp_path) -> None:
    db = Database(tmp_path / "app.db")
    assert db.load_state("nobody") == GamificationState()


def test_state_round_trip(tmp_path) -> None:
    db = Database(tmp_path / "app.db")
    state = _state()
    db.save_state("u1", state)
    loaded = db.load_state("u1")
    assert loaded.profile == state.profile
    assert sorted(q.id for q in loaded.quests) == ["d_start", "d_vol_5"]
    assert {q.id: q.is_completed for q in loaded.quests} == {"d_start": True, "d_vol_5": False}
    assert loaded.unlocks == state.unlocks


def test_saving_again_updates_quests_and_keeps_first_unlock_time(tmp_path) -> None:
    db = Database(tmp_path / "app.db")
    state = _state()
    db.save_state("u1", state)

    later = GamificationState(
        profile=state.profile,
        quests=(state.quests[0], ActiveQuest(TEMPLATES_BY_ID["d_vol_5"], date(2024, 6, 12), date(2024, 6, 12), 5, True)),
        unlocks={"ach_start": _dt(2024, 7, 1)},
    )
    db.save_state("u1", later)
    loaded = db.load_state("u1")
    assert len(loaded.quests) == 2
    assert {q.id: q.current_value for q in loaded.quests}["d_vol_5"] == 5
    assert loaded.unlocks["ach_start"] == _dt(2024, 6, 12, 9)


def test_wipe_gamification(tmp_path) -> None:
    db = Database(tmp_path / "app.db")
    db.save_state("u1", _state())
    db.wipe_gamification("u1")
    assert db.load_state("u1") == GamificationState()


def test_store_errors_are_wrapped(tmp_path) -> None:
    db = Database(tmp_path / "app.db")
    with db._connect() as conn:
        conn.execute("DROP TABLE quests")
    with pytest.raises(StoreError):
        db.load_state("u1")
    with pytest.raises(StoreError):
        db.save_state("u1", _state())
