from __future__ import annotations

import json
from datetime import date, datetime, timezone

import httpx
import pytest

from cycle_quest.catalog import TEMPLATES_BY_ID
from cycle_quest.models import ActiveQuest, GamificationProfile, GamificationState
from cycle_quest.rest_store import RestStore
from cycle_quest.store import StoreError


def _store(handler) -> RestStore:
    return RestStore("https://db.example.test/", "secret", transport=httpx.MockTransport(handler))


def test_list_cycles_filters_and_normalizes() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        rows = [
            {"id": "c1", "date": "2024-06-12", "deposit": 100, "withdrawal": 150, "chest": 20, "profit": 5},
            {"id": "c2", "date": "2024-06-12", "deposit": 10, "withdrawal": 0, "chest": 0, "tags": ["x"]},
        ]
        return httpx.Response(200, json=rows)

    cycles = _store(handler).list_cycles("u1", start=date(2024, 6, 1), end=date(2024, 7, 1))
    assert [c.profit for c in cycles] == [70, -10]
    assert cycles[1].tags == ("x",)

    request = seen[0]
    assert request.url.path == "/rest/v1/cycles"
    assert request.url.params["user_id"] == "eq.u1"
    assert request.url.params["deleted_at"] == "is.null"
    assert request.url.params.get_list("date") == ["gte.2024-06-01", "lt.2024-07-01"]
    assert request.headers["apikey"] == "secret"
    assert request.headers["authorization"] == "Bearer secret"


def test_load_state_reads_three_tables() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        table = request.url.path.rsplit("/", 1)[-1]
        if table == "profiles":
            return httpx.Response(200, json=[{"settings": {"theme": "dark", "gamification": {"level": 3, "totalXP": 450}}}])
        if table == "missions":
            return httpx.Response(
                200,
                json=[
                    {"mission_id": "d_start", "generated_at": "2024-06-12", "expires_at": "2024-06-12", "progress": 1, "is_completed": True},
                    {"mission_id": "unknown", "generated_at": "2024-06-12"},
                ],
            )
        if table == "achievements":
            return httpx.Response(200, json=[{"id": "ach_start", "unlocked_at": "2024-06-12T12:00:00Z"}])
        return httpx.Response(404)

    state = _store(handler).load_state("u1")
    assert state.profile.level == 3
    assert state.profile.total_xp == 450
    assert [q.id for q in state.quests] == ["d_start"]
    assert state.unlocks == {"ach_start": datetime(2024, 6, 12, 12, tzinfo=timezone.utc)}


def test_unlock_without_timestamp_loads_stably() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/achievements"):
            return httpx.Response(200, json=[{"id": "ach_start", "unlocked_at": None}])
        return httpx.Response(200, json=[])

    store = _store(handler)
    assert store.load_state("u1") == store.load_state("u1")


def test_missing_profile_row_gives_defaults() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[])

    assert _store(handler).load_state("u1") == GamificationState()


def test_save_state_upserts_and_merges_settings() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.method == "GET":
            return httpx.Response(200, json=[{"settings": {"theme": "dark"}}])
        return httpx.Response(204)

    day = date(2024, 6, 12)
    state = GamificationState(
        profile=GamificationProfile(level=2, current_xp=150, next_level_xp=400, total_xp=150),
        quests=(ActiveQuest(TEMPLATES_BY_ID["d_start"], day, day, 1, True),),
        unlocks={"ach_start": datetime(2024, 6, 12, 12, tzinfo=timezone.utc)},
    )
    _store(handler).save_state("u1", state)

    by_table = {(r.method, r.url.path.rsplit("/", 1)[-1]): r for r in seen}
    missions = by_table[("POST", "missions")]
    assert missions.url.params["on_conflict"] == "user_id,mission_id,generated_at"
    assert missions.headers["prefer"] == "resolution=merge-duplicates"
    payload = json.loads(missions.content)
    assert payload[0]["mission_id"] == "d_start"
    assert payload[0]["is_completed"] is True

    achievements = by_table[("POST", "achievements")]
    assert achievements.url.params["on_conflict"] == "user_id,id"
    assert json.loads(achievements.content)[0]["id"] == "ach_start"

    patch = by_table[("PATCH", "profiles")]
    assert patch.url.params["id"] == "eq.u1"
    settings = json.loads(patch.content)["settings"]
    assert settings["theme"] == "dark"
    assert settings["gamification"]["level"] == 2


def test_http_errors_raise_store_error() -> None:
    def failing(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    with pytest.raises(StoreError):
        _store(failing).list_cycles("u1")

    def offline(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(StoreError):
        _store(offline).load_state("u1")
