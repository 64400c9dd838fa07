from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any

import httpx

from cycle_quest.db_converters import (
    active_cycles,
    cycle_from_row,
    hydrate_quests,
    profile_from_dict,
    profile_to_dict,
    quest_to_row,
    unlocks_from_rows,
)
from cycle_quest.models import Cycle, GamificationState
from cycle_quest.store import StoreError

logger = logging.getLogger(__name__)

MISSIONS_CONFLICT = "user_id,mission_id,generated_at"
ACHIEVEMENTS_CONFLICT = "user_id,id"


class RestStore:
    """Cycle reader and gamification store over a PostgREST-style HTTP API.

    Tables: ``cycles``, ``missions``, ``achievements`` and ``profiles`` (the
    gamification profile lives under ``settings.gamification``).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=self.timeout,
            transport=self._transport,
        )

    def _request(
        self,
        client: httpx.Client,
        method: str,
        table: str,
        params: Any = None,
        payload: Any = None,
        prefer: str | None = None,
    ) -> Any:
        headers = {"Prefer": prefer} if prefer else None
        try:
            resp = client.request(method, f"/rest/v1/{table}", params=params, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise StoreError(f"{method} {table} failed: {exc}") from exc
        if resp.status_code >= 400:
            raise StoreError(f"{method} {table} returned {resp.status_code}: {resp.text[:200]}")
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise StoreError(f"{method} {table} returned invalid JSON") from exc

    def list_cycles(self, user_id: str, start: date | None = None, end: date | None = None) -> list[Cycle]:
        params: list[tuple[str, str]] = [
            ("select", "*"),
            ("user_id", f"eq.{user_id}"),
            ("deleted_at", "is.null"),
            ("order", "created_at.asc"),
        ]
        if start is not None:
            params.append(("date", f"gte.{start.isoformat()}"))
        if end is not None:
            params.append(("date", f"lt.{end.isoformat()}"))
        with self._client() as client:
            rows = self._request(client, "GET", "cycles", params=params) or []
        return active_cycles(cycle_from_row(r) for r in rows if isinstance(r, dict))

    def _load_settings(self, client: httpx.Client, user_id: str) -> dict[str, Any]:
        rows = self._request(
            client,
            "GET",
            "profiles",
            params={"select": "settings", "id": f"eq.{user_id}"},
        ) or []
        if not rows or not isinstance(rows[0], dict):
            return {}
        settings = rows[0].get("settings")
        return dict(settings) if isinstance(settings, dict) else {}

    def load_state(self, user_id: str) -> GamificationState:
        with self._client() as client:
            settings = self._load_settings(client, user_id)
            missions = self._request(
                client, "GET", "missions", params={"select": "*", "user_id": f"eq.{user_id}"}
            ) or []
            achievements = self._request(
                client, "GET", "achievements", params={"select": "*", "user_id": f"eq.{user_id}"}
            ) or []

        return GamificationState(
            profile=profile_from_dict(settings.get("gamification")),
            quests=hydrate_quests(r for r in missions if isinstance(r, dict)),
            unlocks=unlocks_from_rows(r for r in achievements if isinstance(r, dict)),
        )

    def save_state(self, user_id: str, state: GamificationState) -> None:
        now = datetime.now(tz=timezone.utc).isoformat()
        missions = []
        for quest in state.quests:
            row = quest_to_row(quest)
            missions.append(
                {
                    "user_id": user_id,
                    "mission_id": row["template_id"],
                    "generated_at": row["generated_at"],
                    "expires_at": row["expires_at"],
                    "frequency": row["frequency"],
                    "type": row["metric"],
                    "progress": row["progress"],
                    "target": row["target"],
                    "is_completed": row["is_completed"],
                    "updated_at": now,
                }
            )
        unlocked = [
            {"user_id": user_id, "id": ach_id, "unlocked_at": stamp.isoformat()}
            for ach_id, stamp in state.unlocks.items()
        ]

        with self._client() as client:
            if missions:
                self._request(
                    client,
                    "POST",
                    "missions",
                    params={"on_conflict": MISSIONS_CONFLICT},
                    payload=missions,
                    prefer="resolution=merge-duplicates",
                )
            if unlocked:
                # Existing unlock rows keep their first timestamp.
                self._request(
                    client,
                    "POST",
                    "achievements",
                    params={"on_conflict": ACHIEVEMENTS_CONFLICT},
                    payload=unlocked,
                    prefer="resolution=ignore-duplicates",
                )
            settings = self._load_settings(client, user_id)
            settings["gamification"] = profile_to_dict(state.profile)
            self._request(
                client,
                "PATCH",
                "profiles",
                params={"id": f"eq.{user_id}"},
                payload={"settings": settings},
            )
        logger.debug("saved gamification state via rest user_id=%s quests=%s", user_id, len(missions))
